# Area: Strategies
"""
socket_timeout._strategies.select_poll — Readiness-polling timeouts
====================================================================

Before each read (write), blocks up to the read (write) deadline waiting
for the descriptor to become readable (writable). Once it is, the real
call runs with the socket switched to non-blocking mode, so a send larger
than the free buffer space queues what fits and returns a short count
instead of blocking. If readiness turns out to be spurious the wait
resumes with whatever is left of the deadline. If the wait expires, the
real call is never attempted.

Portable: this is the fallback default where kernel socket timeouts are
unreliable.
"""

from __future__ import annotations

import logging
import selectors
import socket
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from ..errors import OperationTimeoutError
from .base import READ, WRITE, TimeoutStrategy

logger = logging.getLogger("socket_timeout.strategy.select")

T = TypeVar("T")


@dataclass
class SelectData:
    """Per-socket readiness multiplexer."""
    selector: selectors.BaseSelector
    events: int


class SelectStrategy(TimeoutStrategy):
    """Deadline enforcement by waiting for readiness first."""

    name = "Select"

    def attach(self, raw: socket.socket, state: Any) -> None:
        selector = selectors.DefaultSelector()
        selector.register(raw, selectors.EVENT_READ)
        state.strategy_data = SelectData(selector=selector, events=selectors.EVENT_READ)

    def detach(self, raw: socket.socket, state: Any) -> None:
        data = state.strategy_data
        if data is not None:
            data.selector.close()
        state.strategy_data = None

    def enforce_read(
        self, raw: socket.socket, state: Any, call: Callable[[], T], deadline: float
    ) -> T:
        return self._run_when_ready(raw, state, call, READ, selectors.EVENT_READ, deadline)

    def enforce_write(
        self, raw: socket.socket, state: Any, call: Callable[[], T], deadline: float
    ) -> T:
        return self._run_when_ready(raw, state, call, WRITE, selectors.EVENT_WRITE, deadline)

    def _run_when_ready(
        self,
        raw: socket.socket,
        state: Any,
        call: Callable[[], T],
        operation: str,
        event: int,
        deadline: float,
    ) -> T:
        expires = time.monotonic() + deadline
        while True:
            remaining = expires - time.monotonic()
            if remaining <= 0 or not self._wait(raw, state, event, remaining):
                raise OperationTimeoutError(operation, deadline)
            raw.setblocking(False)
            try:
                return call()
            except BlockingIOError:
                logger.debug("Spurious %s readiness on fd %s", operation, raw.fileno())
            finally:
                raw.setblocking(True)

    def _wait(self, raw: socket.socket, state: Any, event: int, deadline: float) -> bool:
        data: SelectData = state.strategy_data
        if data.events != event:
            data.selector.modify(raw, event)
            data.events = event
        ready = data.selector.select(deadline)
        if not ready:
            logger.debug("No readiness within %.3fs on fd %s", deadline, raw.fileno())
        return bool(ready)
