# Area: Strategies
"""
socket_timeout._strategies.base — Strategy interface
=====================================================

A strategy turns a blocking socket call into a deadline-bounded one.
One strategy instance is shared by every socket of the same base type;
all per-socket data lives in the socket's ``SocketState``.
"""

from __future__ import annotations

import logging
import socket
from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from ..errors import CapabilityError

logger = logging.getLogger("socket_timeout.strategy")

T = TypeVar("T")

READ = "read"
WRITE = "write"


class TimeoutStrategy(ABC):
    """
    Base class for deadline enforcement strategies.

    Subclasses set ``name`` and implement ``enforce_read`` and
    ``enforce_write``, which must either return the call's result or raise
    ``OperationTimeoutError``. Custom strategies can be selected with
    ``timeout_strategy="+package.module.ClassName"``.
    """

    name: str = "Base"

    def __init__(self, base_type: type = socket.socket):
        self.base_type = base_type
        self._prepared = False

    @classmethod
    def check_supported(cls) -> None:
        """Raise CapabilityError if this strategy cannot work here."""
        return None

    def prepare(self) -> None:
        """One-time preparation for ``base_type``. Runs once per instance."""
        if self._prepared:
            return
        self.check_supported()
        self._prepare()
        self._prepared = True
        logger.debug("Prepared %s strategy for %s", self.name, self.base_type.__name__)

    def _prepare(self) -> None:
        pass

    def attach(self, raw: socket.socket, state: Any) -> None:
        """Set up per-socket data. Called once when a socket is wrapped."""
        state.strategy_data = None

    def reconfigure(self, raw: socket.socket, state: Any) -> None:
        """Called after a deadline or the enable flag changed."""
        pass

    def detach(self, raw: socket.socket, state: Any) -> None:
        """Release per-socket data. Called when the socket is closed."""
        state.strategy_data = None

    @abstractmethod
    def enforce_read(
        self, raw: socket.socket, state: Any, call: Callable[[], T], deadline: float
    ) -> T:
        ...

    @abstractmethod
    def enforce_write(
        self, raw: socket.socket, state: Any, call: Callable[[], T], deadline: float
    ) -> T:
        ...

    def unsupported(self, reason: str) -> CapabilityError:
        return CapabilityError(self.name, reason)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} for {self.base_type.__name__}>"
