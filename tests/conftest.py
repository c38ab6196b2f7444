# Area: Test fixtures
"""Shared fixtures for socket_timeout tests."""

import socket

import pytest

from socket_timeout import CapabilityError, clear_strategy_cache, get_strategy

STRATEGIES = ["SetSockOpt", "Select", "Alarm"]


@pytest.fixture(autouse=True)
def fresh_strategy_cache():
    """Every test starts without prepared strategy instances."""
    clear_strategy_cache()
    yield
    clear_strategy_cache()


@pytest.fixture(params=STRATEGIES)
def strategy_name(request):
    """Each built-in strategy supported on this platform."""
    try:
        get_strategy(request.param, socket.socket)
    except CapabilityError as e:
        pytest.skip(str(e))
    return request.param


@pytest.fixture
def fill_send_buffer():
    """Return a function that fills a plain socket's send buffer."""

    def _fill(sock: socket.socket) -> int:
        sock.setblocking(False)
        total = 0
        try:
            while True:
                total += sock.send(b"x" * 65536)
        except BlockingIOError:
            pass
        finally:
            sock.setblocking(True)
        return total

    return _fill
