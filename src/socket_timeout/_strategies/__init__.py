# Area: Strategies
"""
socket_timeout._strategies — Strategy registry
===============================================

Resolves strategy selectors to classes and hands out one shared, prepared
strategy instance per (base socket type, strategy class) pair.

Selectors:
    "SetSockOpt", "Select" (or "Poll"), "Alarm"   built-ins, any case
    "+package.module.ClassName"                   custom TimeoutStrategy
    a TimeoutStrategy subclass                    used as is
"""

from __future__ import annotations

import importlib
import logging
from typing import Dict, Tuple, Type, Union

from ..errors import ConfigError
from .alarm import AlarmStrategy
from .base import READ, WRITE, TimeoutStrategy
from .select_poll import SelectStrategy
from .setsockopt import SetSockOptStrategy

logger = logging.getLogger("socket_timeout.strategy")

CUSTOM_PREFIX = "+"

BUILTIN_STRATEGIES: Dict[str, Type[TimeoutStrategy]] = {
    "setsockopt": SetSockOptStrategy,
    "select": SelectStrategy,
    "poll": SelectStrategy,
    "alarm": AlarmStrategy,
}

_instances: Dict[Tuple[type, Type[TimeoutStrategy]], TimeoutStrategy] = {}


def resolve_strategy_class(
    selector: Union[str, Type[TimeoutStrategy]],
) -> Type[TimeoutStrategy]:
    """Turn a strategy selector into a TimeoutStrategy subclass."""
    if isinstance(selector, type):
        cls = selector
    elif selector.startswith(CUSTOM_PREFIX):
        cls = _import_custom(selector[len(CUSTOM_PREFIX):])
    else:
        cls = BUILTIN_STRATEGIES.get(selector.lower())
        if cls is None:
            known = ", ".join(sorted({c.name for c in BUILTIN_STRATEGIES.values()}))
            raise ConfigError(f"Unknown timeout strategy {selector!r} (known: {known})")

    if not (isinstance(cls, type) and issubclass(cls, TimeoutStrategy)):
        raise ConfigError(f"{selector!r} is not a TimeoutStrategy subclass")
    return cls


def _import_custom(path: str) -> type:
    module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ConfigError(f"Custom strategy must be '+package.module.ClassName', got '+{path}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import custom strategy module {module_name!r}: {e}") from e
    try:
        return getattr(module, attr)
    except AttributeError:
        raise ConfigError(f"Module {module_name!r} has no strategy {attr!r}") from None


def get_strategy(
    selector: Union[str, Type[TimeoutStrategy]],
    base_type: type,
) -> TimeoutStrategy:
    """
    Return the shared, prepared strategy for ``base_type``.

    The strategy's capability check and one-time preparation run only the
    first time a pair is requested.
    """
    cls = resolve_strategy_class(selector)
    key = (base_type, cls)
    strategy = _instances.get(key)
    if strategy is None:
        strategy = cls(base_type)
        strategy.prepare()
        _instances[key] = strategy
        logger.debug("Registered %r", strategy)
    return strategy


def clear_strategy_cache() -> None:
    """Forget all prepared strategy instances."""
    _instances.clear()


__all__ = [
    "READ",
    "WRITE",
    "TimeoutStrategy",
    "SetSockOptStrategy",
    "SelectStrategy",
    "AlarmStrategy",
    "BUILTIN_STRATEGIES",
    "resolve_strategy_class",
    "get_strategy",
    "clear_strategy_cache",
]
