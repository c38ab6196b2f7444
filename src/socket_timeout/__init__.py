"""
socket_timeout — Read/write deadlines for blocking sockets
==========================================================

Python sockets created with ``socket.create_connection(..., timeout=...)``
apply one timeout to everything. This package keeps the connect timeout
for connecting only and adds independent read and write deadlines,
enforced on every subsequent I/O call by one of three strategies:

    SetSockOpt   kernel SO_RCVTIMEO / SO_SNDTIMEO (default)
    Select       wait for readiness first (default on NetBSD / Solaris)
    Alarm        interrupt the call with SIGALRM (POSIX, main thread only)

Quick Start:
    from socket_timeout import create_connection, OperationTimeoutError

    sock = create_connection(("127.0.0.1", 6379), timeout=2, read_timeout=0.5)
    sock.sendall(b"PING\\r\\n")
    try:
        reply = sock.readline()
    except OperationTimeoutError:
        ...  # the socket is now invalid: create a new one

After a timeout every further call raises ``SocketResetError``, so a late
reply to an abandoned request can never be read as the answer to the
next one.
"""

from ._shared.logging_config import setup_logging
from ._strategies import (
    AlarmStrategy,
    SelectStrategy,
    SetSockOptStrategy,
    TimeoutStrategy,
    clear_strategy_cache,
    get_strategy,
)
from .config import TimeoutConfig, default_strategy_name, load_environment
from .errors import (
    TimeoutSocketError,
    CapabilityError,
    ConfigError,
    OperationTimeoutError,
    SocketResetError,
)
from .factory import accept, create_connection, socketpair, with_timeout, wrap
from .timeout_socket import SocketState, TimeoutSocket

__all__ = [
    # Construction
    "wrap",
    "with_timeout",
    "create_connection",
    "accept",
    "socketpair",
    # Sockets and config
    "TimeoutSocket",
    "SocketState",
    "TimeoutConfig",
    "default_strategy_name",
    "load_environment",
    # Strategies
    "TimeoutStrategy",
    "SetSockOptStrategy",
    "SelectStrategy",
    "AlarmStrategy",
    "get_strategy",
    "clear_strategy_cache",
    # Errors
    "TimeoutSocketError",
    "CapabilityError",
    "ConfigError",
    "OperationTimeoutError",
    "SocketResetError",
    # Logging
    "setup_logging",
]
__version__ = "1.0.0"
