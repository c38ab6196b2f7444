# Area: Shared
"""
socket_timeout.config — Deadline configuration
===============================================

Validated, immutable read/write deadline pair plus the strategy selector,
and the rules for picking a default strategy on this platform.

Recognized option keys (snake_case or the capitalized aliases):

    read_timeout        / ReadTimeout
    write_timeout       / WriteTimeout
    read_write_timeout  / ReadWriteTimeout   (overrides both when set)
    timeout_strategy    / TimeoutStrategy

Environment:
    SOCKET_TIMEOUT_FORCE_SELECT=1   force the portable Select strategy as
                                    the default, even where SetSockOpt works
"""

from __future__ import annotations

import math
import os
import sys
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError

FORCE_SELECT_ENV = "SOCKET_TIMEOUT_FORCE_SELECT"

# Platforms where SO_RCVTIMEO / SO_SNDTIMEO are not reliable
SOCKOPT_UNSUPPORTED_PLATFORMS = ("netbsd", "sunos")

# Option key → TimeoutConfig field. ``read_write_timeout`` is handled apart.
OPTION_KEYS: Dict[str, str] = {
    "read_timeout": "read_timeout",
    "ReadTimeout": "read_timeout",
    "write_timeout": "write_timeout",
    "WriteTimeout": "write_timeout",
    "read_write_timeout": "read_write_timeout",
    "ReadWriteTimeout": "read_write_timeout",
    "timeout_strategy": "strategy",
    "TimeoutStrategy": "strategy",
}


def coerce_deadline(value: Any, name: str = "timeout") -> Optional[float]:
    """
    Validate one deadline value.

    Returns the value as a float, or None when unset. Raises ConfigError for
    booleans, non-numbers, NaN, infinity and negative numbers.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a number of seconds, got {value!r}")
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number of seconds, got {value!r}") from None
    if math.isnan(seconds) or math.isinf(seconds):
        raise ConfigError(f"{name} must be finite, got {value!r}")
    if seconds < 0:
        raise ConfigError(f"{name} must be >= 0, got {value!r}")
    return seconds


class TimeoutConfig(BaseModel):
    """
    Read and write deadlines, in seconds, and the requested strategy.

    ``None`` and ``0`` both mean "no deadline". A new config replaces an old
    one; instances are never mutated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    read_timeout: Optional[float] = Field(default=None, alias="ReadTimeout")
    write_timeout: Optional[float] = Field(default=None, alias="WriteTimeout")
    strategy: Any = Field(default=None, alias="TimeoutStrategy")

    @field_validator("read_timeout", "write_timeout", mode="before")
    @classmethod
    def _check_deadline(cls, value: Any, info) -> Optional[float]:
        try:
            return coerce_deadline(value, info.field_name)
        except ConfigError as e:
            # pydantic collects ValueErrors into a ValidationError
            raise ValueError(str(e)) from None

    @field_validator("strategy", mode="before")
    @classmethod
    def _check_strategy(cls, value: Any) -> Any:
        if value is None or isinstance(value, (str, type)):
            return value or None
        raise ValueError(f"strategy must be a name or a class, got {value!r}")

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid timeout configuration: {e}") from e

    @classmethod
    def from_options(cls, **options: Any) -> "TimeoutConfig":
        """
        Build a config from construction options.

        ``read_write_timeout`` takes precedence over the separate read and
        write deadlines. Unknown keys raise ConfigError.
        """
        fields: Dict[str, Any] = {}
        read_write = None
        for key, value in options.items():
            target = OPTION_KEYS.get(key)
            if target is None:
                raise ConfigError(f"Unknown timeout option: {key!r}")
            if target == "read_write_timeout":
                read_write = value
            else:
                fields[target] = value

        if read_write is not None:
            fields["read_timeout"] = read_write
            fields["write_timeout"] = read_write

        return cls(**fields)

    @property
    def read_enabled(self) -> bool:
        return bool(self.read_timeout)

    @property
    def write_enabled(self) -> bool:
        return bool(self.write_timeout)

    @property
    def is_active(self) -> bool:
        """True when at least one deadline is positive."""
        return self.read_enabled or self.write_enabled


def split_options(kwargs: Dict[str, Any]) -> tuple[Dict[str, Any], Dict[str, Any]]:
    """Separate timeout options from the arguments meant for the base socket."""
    timeout_options = {k: v for k, v in kwargs.items() if k in OPTION_KEYS}
    rest = {k: v for k, v in kwargs.items() if k not in OPTION_KEYS}
    return timeout_options, rest


def load_environment(env_file: Optional[str] = None) -> Dict[str, str]:
    """
    Return the effective environment.

    Values from ``env_file`` (a dotenv file) are overridden by the real
    process environment.
    """
    env: Dict[str, str] = {}
    if env_file:
        env.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    env.update(os.environ)
    return env


def is_select_forced(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Check the environment switch that forces the Select strategy."""
    env = os.environ if environ is None else environ
    return env.get(FORCE_SELECT_ENV, "").lower() in ("true", "1", "yes")


def sockopt_supported(platform: Optional[str] = None) -> bool:
    """Whether kernel socket timeouts are reliable on this platform."""
    platform = sys.platform if platform is None else platform
    return not platform.startswith(SOCKOPT_UNSUPPORTED_PLATFORMS)


def default_strategy_name(
    platform: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Pick the default strategy name.

    SetSockOpt where the kernel supports it, Select on NetBSD / Solaris or
    when the environment forces it.
    """
    if is_select_forced(environ):
        return "Select"
    if not sockopt_supported(platform):
        return "Select"
    return "SetSockOpt"
