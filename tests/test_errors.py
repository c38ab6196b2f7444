# Area: Shared Tests
"""Tests for the socket_timeout exception hierarchy."""

import errno

import pytest

from socket_timeout.errors import (
    CapabilityError,
    ConfigError,
    OperationTimeoutError,
    SocketResetError,
    TimeoutSocketError,
)


class TestOperationTimeoutError:
    """OperationTimeoutError behaves like an ETIMEDOUT OSError."""

    def test_is_builtin_timeout_error(self):
        err = OperationTimeoutError("read", 0.2)
        assert isinstance(err, TimeoutError)
        assert isinstance(err, OSError)
        assert isinstance(err, TimeoutSocketError)

    def test_carries_errno_and_context(self):
        err = OperationTimeoutError("write", 1.5)
        assert err.errno == errno.ETIMEDOUT
        assert err.operation == "write"
        assert err.deadline == 1.5
        assert "write deadline 1.5s" in str(err)

    def test_can_be_caught_as_oserror(self):
        with pytest.raises(OSError) as exc_info:
            raise OperationTimeoutError("read", 0.1)
        assert exc_info.value.errno == errno.ETIMEDOUT


class TestSocketResetError:
    def test_is_connection_reset(self):
        err = SocketResetError("read")
        assert isinstance(err, ConnectionResetError)
        assert err.errno == errno.ECONNRESET
        assert err.operation == "read"

    def test_distinct_from_timeout(self):
        assert not isinstance(SocketResetError("read"), TimeoutError)


class TestConstructionErrors:
    def test_capability_error_message(self):
        err = CapabilityError("Alarm", "no SIGALRM")
        assert isinstance(err, RuntimeError)
        assert err.strategy == "Alarm"
        assert "Alarm" in str(err) and "no SIGALRM" in str(err)

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)
        assert issubclass(ConfigError, TimeoutSocketError)
