# Area: Socket
"""
socket_timeout.timeout_socket — Timeout-aware socket
=====================================================

``TimeoutSocket`` wraps a blocking ``socket.socket`` and routes every read
and write through the bound strategy:

1. Invalid socket → ``SocketResetError`` at once, the OS is not touched.
2. Enforcement disabled, or no deadline for this direction → plain call.
3. Otherwise the strategy enforces the deadline.
4. A timeout marks the socket invalid for good and is re-raised as
   ``OperationTimeoutError``.

The raw socket is never handed out (no ``fileno``, ``makefile`` or
attribute fallthrough), so nothing can bypass enforcement.
"""

from __future__ import annotations

import errno
import logging
import socket
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar

from ._strategies import READ, WRITE, TimeoutStrategy
from .config import TimeoutConfig, coerce_deadline
from .errors import OperationTimeoutError, SocketResetError

logger = logging.getLogger("socket_timeout.socket")

T = TypeVar("T")

DEFAULT_BUFSIZE = 8192


@dataclass
class SocketState:
    """Mutable per-socket record. Owned by exactly one TimeoutSocket."""
    read_timeout: Optional[float] = None
    write_timeout: Optional[float] = None
    timeout_enabled: bool = True
    valid: bool = True
    last_error: Optional[int] = None
    strategy_data: Any = None


class TimeoutSocket:
    """
    A blocking socket with independent read and write deadlines.

    Not thread-safe: one socket, one conversation, one owner.
    """

    def __init__(
        self,
        sock: socket.socket,
        config: TimeoutConfig,
        strategy: TimeoutStrategy,
        close_on_timeout: bool = False,
    ):
        self._sock = sock
        self._config = config
        self._strategy = strategy
        self._close_on_timeout = close_on_timeout
        self._rbuf = bytearray()
        self._state = SocketState(
            read_timeout=config.read_timeout,
            write_timeout=config.write_timeout,
        )
        # Deadlines are ours to enforce; the native timeout stays connect-only
        sock.settimeout(None)
        strategy.attach(sock, self._state)
        logger.debug(
            "Wrapped fd %s with %s (read=%s, write=%s)",
            sock.fileno(), strategy.name, config.read_timeout, config.write_timeout,
        )

    # ── Accessors ────────────────────────────────────────────

    @property
    def read_timeout(self) -> Optional[float]:
        return self._state.read_timeout

    @read_timeout.setter
    def read_timeout(self, value: Optional[float]) -> None:
        self._state.read_timeout = coerce_deadline(value, "read_timeout")
        self._reconfigure()

    @property
    def write_timeout(self) -> Optional[float]:
        return self._state.write_timeout

    @write_timeout.setter
    def write_timeout(self, value: Optional[float]) -> None:
        self._state.write_timeout = coerce_deadline(value, "write_timeout")
        self._reconfigure()

    @property
    def timeout_enabled(self) -> bool:
        return self._state.timeout_enabled

    @timeout_enabled.setter
    def timeout_enabled(self, enabled: bool) -> None:
        """Suspend or resume enforcement; deadlines are kept either way."""
        self._state.timeout_enabled = bool(enabled)
        self._reconfigure()

    def enable_timeout(self) -> None:
        self.timeout_enabled = True

    def disable_timeout(self) -> None:
        self.timeout_enabled = False

    @property
    def valid(self) -> bool:
        """False once any enforced operation has timed out."""
        return self._state.valid

    is_valid = valid

    @property
    def last_error(self) -> Optional[int]:
        """errno of the last timeout / reset (ETIMEDOUT or ECONNRESET)."""
        return self._state.last_error

    @property
    def strategy_name(self) -> str:
        return self._strategy.name

    @property
    def config(self) -> TimeoutConfig:
        """The configuration this socket was wrapped with."""
        return self._config

    @property
    def closed(self) -> bool:
        return self._sock.fileno() == -1

    @property
    def family(self) -> socket.AddressFamily:
        return self._sock.family

    @property
    def type(self) -> socket.SocketKind:
        return self._sock.type

    @property
    def proto(self) -> int:
        return self._sock.proto

    # ── Dispatch ─────────────────────────────────────────────

    def _reconfigure(self) -> None:
        if self._state.valid and not self.closed:
            self._strategy.reconfigure(self._sock, self._state)

    def _enforce(self, operation: str, call: Callable[[], T]) -> T:
        self._check_usable(operation)
        state = self._state
        deadline = state.read_timeout if operation == READ else state.write_timeout
        if not state.timeout_enabled or not deadline:
            return call()

        try:
            if operation == READ:
                return self._strategy.enforce_read(self._sock, state, call, deadline)
            return self._strategy.enforce_write(self._sock, state, call, deadline)
        except OperationTimeoutError:
            self._invalidate(operation, deadline)
            raise

    def _invalidate(self, operation: str, deadline: float) -> None:
        self._state.valid = False
        self._state.last_error = errno.ETIMEDOUT
        logger.warning(
            "%s timed out after %gs on %s; socket invalidated",
            operation.capitalize(), deadline, self._describe(),
            extra={"operation": operation, "deadline": deadline, "strategy": self._strategy.name},
        )
        if self._close_on_timeout:
            self._close_raw()

    def _check_usable(self, operation: str) -> None:
        if not self._state.valid:
            self._state.last_error = errno.ECONNRESET
            raise SocketResetError(operation)

    # ── Reads ────────────────────────────────────────────────

    # Bytes left over from readline/read are served before the socket is read

    def _take_buffered(self, bufsize: int) -> bytes:
        data = bytes(self._rbuf[:bufsize])
        del self._rbuf[:bufsize]
        return data

    def _take_buffered_into(self, buffer: Any, nbytes: int) -> int:
        view = memoryview(buffer).cast("B")
        n = min(len(self._rbuf), nbytes or len(view))
        view[:n] = self._rbuf[:n]
        del self._rbuf[:n]
        return n

    def recv(self, bufsize: int, flags: int = 0) -> bytes:
        self._check_usable(READ)
        if self._rbuf:
            return self._take_buffered(bufsize)
        return self._enforce(READ, lambda: self._sock.recv(bufsize, flags))

    def recv_into(self, buffer: Any, nbytes: int = 0, flags: int = 0) -> int:
        self._check_usable(READ)
        if self._rbuf:
            return self._take_buffered_into(buffer, nbytes)
        return self._enforce(READ, lambda: self._sock.recv_into(buffer, nbytes, flags))

    def recvfrom(self, bufsize: int, flags: int = 0) -> Tuple[bytes, Any]:
        """Like ``recv``, plus the sender; buffered bytes report ``None``."""
        self._check_usable(READ)
        if self._rbuf:
            return self._take_buffered(bufsize), None
        return self._enforce(READ, lambda: self._sock.recvfrom(bufsize, flags))

    def recvfrom_into(self, buffer: Any, nbytes: int = 0, flags: int = 0) -> Tuple[int, Any]:
        self._check_usable(READ)
        if self._rbuf:
            return self._take_buffered_into(buffer, nbytes), None
        return self._enforce(READ, lambda: self._sock.recvfrom_into(buffer, nbytes, flags))

    def readline(self, limit: int = -1) -> bytes:
        """
        Read one line, including the trailing newline.

        Returns what is buffered (possibly ``b""``) at end of stream. The
        read deadline applies to each underlying ``recv``.
        """
        self._check_usable(READ)
        if limit == 0:
            return b""
        while True:
            end = self._rbuf.find(b"\n") + 1
            if end == 0 and 0 <= limit <= len(self._rbuf):
                end = limit
            if end:
                if 0 <= limit < end:
                    end = limit
                line = bytes(self._rbuf[:end])
                del self._rbuf[:end]
                return line
            chunk = self._enforce(READ, lambda: self._sock.recv(DEFAULT_BUFSIZE))
            if not chunk:
                line = bytes(self._rbuf)
                self._rbuf.clear()
                return line
            self._rbuf += chunk

    def readlines(self) -> List[bytes]:
        lines = []
        while True:
            line = self.readline()
            if not line:
                return lines
            lines.append(line)

    def read(self, n: int = -1) -> bytes:
        """Read exactly ``n`` bytes, or up to end of stream when ``n < 0``.

        Fewer than ``n`` bytes are returned only at end of stream.
        """
        self._check_usable(READ)
        while n < 0 or len(self._rbuf) < n:
            chunk = self._enforce(READ, lambda: self._sock.recv(DEFAULT_BUFSIZE))
            if not chunk:
                break
            self._rbuf += chunk
        if n < 0:
            n = len(self._rbuf)
        data = bytes(self._rbuf[:n])
        del self._rbuf[:n]
        return data

    # ── Writes ───────────────────────────────────────────────

    def send(self, data: Any, flags: int = 0) -> int:
        return self._enforce(WRITE, lambda: self._sock.send(data, flags))

    def sendto(self, data: Any, *args: Any) -> int:
        return self._enforce(WRITE, lambda: self._sock.sendto(data, *args))

    def sendmsg(self, buffers: Iterable[Any], *args: Any) -> int:
        buffers = list(buffers)
        return self._enforce(WRITE, lambda: self._sock.sendmsg(buffers, *args))

    def sendall(self, data: Any, flags: int = 0) -> None:
        """
        Send everything, one enforced ``send`` at a time.

        Each ``send`` may queue only part of the data; the write deadline
        bounds every call, so a peer that stops reading times the loop out.
        """
        view = memoryview(data).cast("B")
        while view:
            sent = self.send(view, flags)
            view = view[sent:]

    def write(self, data: Any) -> int:
        size = memoryview(data).nbytes
        self.sendall(data)
        return size

    def writelines(self, buffers: Iterable[Any]) -> None:
        for buffer in buffers:
            self.sendall(buffer)

    # ── Everything else ──────────────────────────────────────

    def accept(self) -> Tuple["TimeoutSocket", Any]:
        """
        Accept a connection wrapped with this socket's settings.

        Waiting for a connection is a read: the read deadline bounds it and
        a listener that times out is invalidated.
        """
        conn, address = self._enforce(READ, self._sock.accept)
        child = TimeoutSocket(
            conn,
            self._config.model_copy(update={
                "read_timeout": self._state.read_timeout,
                "write_timeout": self._state.write_timeout,
            }),
            self._strategy,
            close_on_timeout=self._close_on_timeout,
        )
        if not self._state.timeout_enabled:
            child.timeout_enabled = False
        return child, address

    def getsockname(self) -> Any:
        return self._sock.getsockname()

    def getpeername(self) -> Any:
        return self._sock.getpeername()

    def setsockopt(self, *args: Any) -> None:
        self._sock.setsockopt(*args)

    def getsockopt(self, *args: Any) -> Any:
        return self._sock.getsockopt(*args)

    def shutdown(self, how: int) -> None:
        self._sock.shutdown(how)

    def close(self) -> None:
        if self.closed:
            return
        self._close_raw()

    def _close_raw(self) -> None:
        self._strategy.detach(self._sock, self._state)
        self._sock.close()

    def __enter__(self) -> "TimeoutSocket":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _describe(self) -> str:
        try:
            return f"{self._sock.getsockname()!r} → {self._sock.getpeername()!r}"
        except OSError:
            return f"fd {self._sock.fileno()}"

    def __repr__(self) -> str:
        state = self._state
        return (
            f"<TimeoutSocket {self._strategy.name} read={state.read_timeout} "
            f"write={state.write_timeout} enabled={state.timeout_enabled} "
            f"valid={state.valid} closed={self.closed}>"
        )
