# Area: Socket
"""
socket_timeout.factory — Socket construction with read/write deadlines
=======================================================================

Entry points that build (or accept) a socket and wrap it:

    wrap(sock, read_timeout=0.5)
    with_timeout(socket.create_connection, ("host", 80), timeout=2, read_timeout=0.5)
    create_connection(("host", 80), timeout=2, read_write_timeout=1)
    accept(listener, write_timeout=1)
    socketpair(read_timeout=0.2)

When no deadline is positive the plain socket is returned untouched.

The default strategy is a parameter (``default_strategy``). When it is not
given, SetSockOpt is used except on NetBSD / Solaris or when
``SOCKET_TIMEOUT_FORCE_SELECT`` is set, where Select is used. An
explicitly requested strategy that cannot work here raises
CapabilityError; an unusable default falls back to Select.
"""

from __future__ import annotations

import logging
import socket
from typing import Any, Callable, Optional, Tuple, Union

from ._strategies import TimeoutStrategy, get_strategy
from .config import TimeoutConfig, default_strategy_name, split_options
from .errors import CapabilityError
from .timeout_socket import TimeoutSocket

logger = logging.getLogger("socket_timeout.factory")

FALLBACK_STRATEGY = "Select"

# Wrapper options that are not part of TimeoutConfig
WRAP_OPTION_KEYS = ("close_on_timeout", "default_strategy")

SocketLike = Union[socket.socket, TimeoutSocket]


def resolve_strategy(
    config: TimeoutConfig,
    base_type: type,
    default_strategy: Optional[str] = None,
) -> TimeoutStrategy:
    """Pick the shared strategy instance for a config and base type."""
    if config.strategy:
        return get_strategy(config.strategy, base_type)

    name = default_strategy or default_strategy_name()
    try:
        return get_strategy(name, base_type)
    except CapabilityError as e:
        logger.warning("%s; falling back to %s", e, FALLBACK_STRATEGY)
        return get_strategy(FALLBACK_STRATEGY, base_type)


def _wrap_with_config(
    sock: socket.socket,
    config: TimeoutConfig,
    close_on_timeout: bool,
    default_strategy: Optional[str],
    strategy: Optional[TimeoutStrategy] = None,
) -> TimeoutSocket:
    if strategy is None:
        strategy = resolve_strategy(config, type(sock), default_strategy)
    try:
        return TimeoutSocket(sock, config, strategy, close_on_timeout=close_on_timeout)
    except CapabilityError:
        sock.close()
        raise


def wrap(
    sock: socket.socket,
    close_on_timeout: bool = False,
    default_strategy: Optional[str] = None,
    **timeout_options: Any,
) -> SocketLike:
    """
    Wrap an existing blocking socket.

    Returns ``sock`` itself when no read or write deadline is positive.
    """
    config = TimeoutConfig.from_options(**timeout_options)
    if not config.is_active:
        return sock
    return _wrap_with_config(sock, config, close_on_timeout, default_strategy)


def with_timeout(constructor: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """
    Call ``constructor(*args, **rest)`` and wrap the socket it returns.

    Timeout and wrapper options are taken out of ``kwargs``; everything
    else goes to the constructor unmodified. Constructors returning a
    ``(socket, address)`` pair, like ``listener.accept``, get the socket
    wrapped and the address passed through.
    """
    timeout_options, rest = split_options(kwargs)
    wrap_options = {k: rest.pop(k) for k in WRAP_OPTION_KEYS if k in rest}

    config = TimeoutConfig.from_options(**timeout_options)
    result = constructor(*args, **rest)
    if not config.is_active:
        return result

    wrap_kwargs = dict(
        close_on_timeout=wrap_options.get("close_on_timeout", False),
        default_strategy=wrap_options.get("default_strategy"),
    )
    if isinstance(result, tuple):
        sock, address = result
        return _wrap_with_config(sock, config, **wrap_kwargs), address
    return _wrap_with_config(result, config, **wrap_kwargs)


def create_connection(
    address: Tuple[str, int],
    timeout: Optional[float] = None,
    source_address: Optional[Tuple[str, int]] = None,
    **options: Any,
) -> SocketLike:
    """
    Connect to ``address`` and wrap the connection.

    ``timeout`` bounds the connect only; reads and writes are bounded by
    the read/write deadlines.
    """
    sock = socket.create_connection(address, timeout=timeout, source_address=source_address)
    if timeout is not None:
        sock.settimeout(None)
    try:
        return wrap(sock, **options)
    except Exception:
        sock.close()
        raise


def accept(listener: socket.socket, **options: Any) -> Tuple[SocketLike, Any]:
    """Accept one connection on a plain listening socket and wrap it."""
    return with_timeout(listener.accept, **options)


def socketpair(
    family: Optional[int] = None,
    type: int = socket.SOCK_STREAM,
    proto: int = 0,
    close_on_timeout: bool = False,
    default_strategy: Optional[str] = None,
    **timeout_options: Any,
) -> Tuple[SocketLike, SocketLike]:
    """
    Create a connected pair with both ends wrapped.

    Each end has its own state; invalidating one leaves the other alone.
    Both share the same strategy instance.
    """
    config = TimeoutConfig.from_options(**timeout_options)
    if family is None:
        left, right = socket.socketpair(type=type, proto=proto)
    else:
        left, right = socket.socketpair(family, type, proto)
    if not config.is_active:
        return left, right

    try:
        strategy = resolve_strategy(config, left.__class__, default_strategy)
    except Exception:
        left.close()
        right.close()
        raise
    wrapped_left = _wrap_with_config(left, config, close_on_timeout, default_strategy, strategy)
    try:
        wrapped_right = _wrap_with_config(right, config, close_on_timeout, default_strategy, strategy)
    except Exception:
        wrapped_left.close()
        raise
    return wrapped_left, wrapped_right


__all__ = [
    "wrap",
    "with_timeout",
    "create_connection",
    "accept",
    "socketpair",
    "resolve_strategy",
]
