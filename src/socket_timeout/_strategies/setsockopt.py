# Area: Strategies
"""
socket_timeout._strategies.setsockopt — Kernel socket timeouts
===============================================================

Sets ``SO_RCVTIMEO`` / ``SO_SNDTIMEO`` on the socket so the kernel itself
aborts a blocking call once the deadline elapses. The call then fails with
``EAGAIN`` / ``EWOULDBLOCK`` (``WSAETIMEDOUT`` on Windows), which is
normalized to ``OperationTimeoutError``.

The option values are re-applied whenever a deadline or the enable flag
changes. Disabled or unset deadlines are written as zero ("no timeout").
"""

from __future__ import annotations

import errno
import logging
import socket
import struct
import sys
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from ..config import sockopt_supported
from ..errors import CapabilityError, OperationTimeoutError
from .base import READ, WRITE, TimeoutStrategy

logger = logging.getLogger("socket_timeout.strategy.setsockopt")

T = TypeVar("T")

TIMEOUT_ERRNOS = frozenset(
    code for code in (
        errno.EAGAIN,
        errno.EWOULDBLOCK,
        errno.ETIMEDOUT,
        getattr(errno, "WSAETIMEDOUT", None),
    ) if code is not None
)


def pack_timeout(seconds: Optional[float], platform: Optional[str] = None) -> bytes:
    """
    Pack a deadline for SO_RCVTIMEO / SO_SNDTIMEO.

    A ``struct timeval`` of two native longs on POSIX, a DWORD of
    milliseconds on Windows. ``None`` and ``0`` pack as zero. Zero means
    "no timeout" to the kernel, so a positive deadline is raised to the
    smallest unit the platform can express.
    """
    platform = sys.platform if platform is None else platform
    seconds = seconds or 0.0
    if platform == "win32":
        millis = int(round(seconds * 1000))
        if seconds > 0:
            millis = max(millis, 1)
        return struct.pack("@L", millis)
    whole = int(seconds)
    micro = int(1_000_000 * (seconds - whole))
    if seconds > 0 and not whole and not micro:
        micro = 1
    return struct.pack("@ll", whole, micro)


@dataclass
class SockOptData:
    """Packed kernel values currently applied to one socket."""
    rcvtimeo: bytes
    sndtimeo: bytes


class SetSockOptStrategy(TimeoutStrategy):
    """Deadline enforcement through kernel socket options."""

    name = "SetSockOpt"

    @classmethod
    def check_supported(cls) -> None:
        if not sockopt_supported():
            raise CapabilityError(cls.name, f"{sys.platform} is not supported yet")
        if not (hasattr(socket, "SO_RCVTIMEO") and hasattr(socket, "SO_SNDTIMEO")):
            raise CapabilityError(cls.name, "SO_RCVTIMEO/SO_SNDTIMEO are unavailable")

    def attach(self, raw: socket.socket, state: Any) -> None:
        state.strategy_data = SockOptData(rcvtimeo=b"", sndtimeo=b"")
        self.reconfigure(raw, state)

    def reconfigure(self, raw: socket.socket, state: Any) -> None:
        data: SockOptData = state.strategy_data
        if state.timeout_enabled:
            rcvtimeo = pack_timeout(state.read_timeout)
            sndtimeo = pack_timeout(state.write_timeout)
        else:
            rcvtimeo = sndtimeo = pack_timeout(None)

        if rcvtimeo != data.rcvtimeo:
            self._setsockopt(raw, socket.SO_RCVTIMEO, rcvtimeo)
            data.rcvtimeo = rcvtimeo
        if sndtimeo != data.sndtimeo:
            self._setsockopt(raw, socket.SO_SNDTIMEO, sndtimeo)
            data.sndtimeo = sndtimeo

    def detach(self, raw: socket.socket, state: Any) -> None:
        state.strategy_data = None

    def enforce_read(
        self, raw: socket.socket, state: Any, call: Callable[[], T], deadline: float
    ) -> T:
        return self._run(call, READ, deadline)

    def enforce_write(
        self, raw: socket.socket, state: Any, call: Callable[[], T], deadline: float
    ) -> T:
        return self._run(call, WRITE, deadline)

    def _run(self, call: Callable[[], T], operation: str, deadline: float) -> T:
        try:
            return call()
        except OSError as e:
            if e.errno in TIMEOUT_ERRNOS:
                raise OperationTimeoutError(operation, deadline) from e
            raise

    def _setsockopt(self, raw: socket.socket, option: int, value: bytes) -> None:
        option_name = "SO_RCVTIMEO" if option == socket.SO_RCVTIMEO else "SO_SNDTIMEO"
        try:
            raw.setsockopt(socket.SOL_SOCKET, option, value)
        except OSError as e:
            raise CapabilityError(self.name, f"setsockopt({option_name}): {e}") from e
        logger.debug("setsockopt(%s) applied on fd %s", option_name, raw.fileno())
