# Area: Strategies
"""
socket_timeout._strategies.alarm — SIGALRM-based timeouts
==========================================================

Races each blocking call against ``SIGALRM``. A transient handler is
installed and an interval timer armed (``signal.setitimer``, so sub-second
deadlines work) right before the call. When the timer fires, the handler
raises inside the blocked call, which unwinds it; that unwind is reported
as ``OperationTimeoutError``.

On every exit path the timer is cancelled, the previous handler restored,
and a previously pending interval timer re-armed with whatever time it had
left.

Signal handlers only run on the main thread, and Windows has no SIGALRM,
so this strategy refuses to work in either situation.
"""

from __future__ import annotations

import logging
import signal
import socket
import sys
import threading
import time
from typing import Any, Callable, TypeVar

from ..errors import CapabilityError, OperationTimeoutError
from .base import READ, WRITE, TimeoutStrategy

logger = logging.getLogger("socket_timeout.strategy.alarm")

T = TypeVar("T")

# Smallest delay used to re-arm a previous timer that expired meanwhile
_MIN_REARM = 1e-6


class _AlarmExpired(Exception):
    """Raised by the SIGALRM handler to unwind the blocked call."""


class AlarmStrategy(TimeoutStrategy):
    """Deadline enforcement by interrupting the call with SIGALRM."""

    name = "Alarm"

    @classmethod
    def check_supported(cls) -> None:
        if sys.platform == "win32":
            raise CapabilityError(cls.name, "alarm cannot interrupt blocking system calls on Windows")
        if not (hasattr(signal, "SIGALRM") and hasattr(signal, "setitimer")):
            raise CapabilityError(cls.name, "SIGALRM/setitimer are unavailable")

    def attach(self, raw: socket.socket, state: Any) -> None:
        self._require_main_thread()
        state.strategy_data = None

    def enforce_read(
        self, raw: socket.socket, state: Any, call: Callable[[], T], deadline: float
    ) -> T:
        return self._run(call, READ, deadline)

    def enforce_write(
        self, raw: socket.socket, state: Any, call: Callable[[], T], deadline: float
    ) -> T:
        return self._run(call, WRITE, deadline)

    def _require_main_thread(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            raise self.unsupported("signal handlers can only be installed from the main thread")

    def _run(self, call: Callable[[], T], operation: str, deadline: float) -> T:
        self._require_main_thread()
        armed = True

        def on_alarm(signum, frame):
            if armed:
                raise _AlarmExpired()

        old_handler = signal.signal(signal.SIGALRM, on_alarm)
        started = time.monotonic()
        old_delay, old_interval = signal.setitimer(signal.ITIMER_REAL, deadline)
        try:
            return call()
        except _AlarmExpired:
            logger.debug("SIGALRM fired after %.3fs during %s", deadline, operation)
            raise OperationTimeoutError(operation, deadline) from None
        finally:
            armed = False
            signal.setitimer(signal.ITIMER_REAL, 0)
            if old_handler is not None:
                signal.signal(signal.SIGALRM, old_handler)
            if old_delay > 0:
                remaining = old_delay - (time.monotonic() - started)
                signal.setitimer(signal.ITIMER_REAL, max(remaining, _MIN_REARM), old_interval)
