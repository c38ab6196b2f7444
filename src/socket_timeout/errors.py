# Area: Shared
"""
socket_timeout.errors — Custom exception classes
=================================================

Defines the exception hierarchy for timeout-enforced sockets.

Construction-time failures (``CapabilityError``, ``ConfigError``) are
programming or platform errors. I/O-time failures
(``OperationTimeoutError``, ``SocketResetError``) are ``OSError`` subclasses
carrying ``ETIMEDOUT`` / ``ECONNRESET`` so callers can tell "recreate the
socket" apart from everything else.
"""

from __future__ import annotations

import errno
import os
from typing import Optional


class TimeoutSocketError(Exception):
    """Base exception for all socket_timeout package errors."""
    pass


class CapabilityError(TimeoutSocketError, RuntimeError):
    """Raised when a strategy cannot work on this platform or thread."""

    def __init__(self, strategy: str, reason: str):
        self.strategy = strategy
        self.reason = reason
        super().__init__(f"Timeout strategy '{strategy}' is not supported: {reason}")


class ConfigError(TimeoutSocketError, ValueError):
    """Raised when timeout options are malformed."""
    pass


class OperationTimeoutError(TimeoutSocketError, TimeoutError):
    """Raised when a read or write exceeds its deadline.

    The socket that raised it is invalid from then on.
    """

    def __init__(self, operation: str, deadline: Optional[float]):
        self.operation = operation
        self.deadline = deadline
        message = os.strerror(errno.ETIMEDOUT)
        if deadline is not None:
            message = f"{message} ({operation} deadline {deadline:g}s)"
        super().__init__(errno.ETIMEDOUT, message)


class SocketResetError(TimeoutSocketError, ConnectionResetError):
    """Raised for any I/O attempted on a socket invalidated by a timeout."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            errno.ECONNRESET,
            f"{os.strerror(errno.ECONNRESET)} ({operation} on a socket invalidated by a timeout)",
        )
