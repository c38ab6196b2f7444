# Area: Shared Tests
"""Tests for TimeoutConfig and default strategy selection."""

import pytest

from socket_timeout.config import (
    FORCE_SELECT_ENV,
    TimeoutConfig,
    coerce_deadline,
    default_strategy_name,
    is_select_forced,
    load_environment,
    split_options,
)
from socket_timeout.errors import ConfigError


class TestCoerceDeadline:
    def test_none_stays_none(self):
        assert coerce_deadline(None) is None

    def test_int_becomes_float(self):
        assert coerce_deadline(2) == 2.0
        assert isinstance(coerce_deadline(2), float)

    def test_numeric_string_accepted(self):
        assert coerce_deadline("0.5") == 0.5

    @pytest.mark.parametrize("bad", [-1, -0.001, "abc", True, float("nan"), float("inf"), object()])
    def test_rejects_bad_values(self, bad):
        with pytest.raises(ConfigError):
            coerce_deadline(bad)


class TestTimeoutConfig:
    """Tests for TimeoutConfig construction and precedence."""

    def test_defaults_are_inactive(self):
        config = TimeoutConfig()
        assert config.read_timeout is None
        assert config.write_timeout is None
        assert config.is_active is False

    def test_zero_is_no_timeout(self):
        config = TimeoutConfig(read_timeout=0, write_timeout=0)
        assert config.read_enabled is False
        assert config.is_active is False

    def test_read_only_is_active(self):
        config = TimeoutConfig(read_timeout=0.2)
        assert config.read_enabled is True
        assert config.write_enabled is False
        assert config.is_active is True

    def test_capitalized_aliases(self):
        config = TimeoutConfig(ReadTimeout=1, WriteTimeout=2, TimeoutStrategy="Select")
        assert config.read_timeout == 1.0
        assert config.write_timeout == 2.0
        assert config.strategy == "Select"

    def test_negative_raises_config_error(self):
        with pytest.raises(ConfigError):
            TimeoutConfig(read_timeout=-1)

    def test_unknown_field_raises_config_error(self):
        with pytest.raises(ConfigError):
            TimeoutConfig(read_timout=1)

    def test_bad_strategy_type_raises(self):
        with pytest.raises(ConfigError):
            TimeoutConfig(strategy=42)

    def test_frozen(self):
        config = TimeoutConfig(read_timeout=1)
        with pytest.raises(Exception):
            config.read_timeout = 2

    def test_read_write_sets_both(self):
        combined = TimeoutConfig.from_options(read_write_timeout=1)
        separate = TimeoutConfig.from_options(read_timeout=1, write_timeout=1)
        assert combined == separate

    def test_read_write_overrides_both(self):
        config = TimeoutConfig.from_options(
            ReadTimeout=5, WriteTimeout=6, ReadWriteTimeout=1,
        )
        assert config.read_timeout == 1.0
        assert config.write_timeout == 1.0

    def test_from_options_strategy(self):
        config = TimeoutConfig.from_options(read_timeout=1, timeout_strategy="Alarm")
        assert config.strategy == "Alarm"

    def test_from_options_unknown_key(self):
        with pytest.raises(ConfigError, match="Unknown timeout option"):
            TimeoutConfig.from_options(read_timeout=1, host="x")


class TestSplitOptions:
    def test_separates_timeout_options(self):
        timeout_options, rest = split_options(
            {"read_timeout": 1, "TimeoutStrategy": "Select", "timeout": 3, "source_address": None}
        )
        assert timeout_options == {"read_timeout": 1, "TimeoutStrategy": "Select"}
        assert rest == {"timeout": 3, "source_address": None}


class TestDefaultStrategy:
    """Tests for platform and environment default selection."""

    def test_linux_uses_setsockopt(self):
        assert default_strategy_name(platform="linux", environ={}) == "SetSockOpt"

    @pytest.mark.parametrize("platform", ["netbsd10", "sunos5"])
    def test_unreliable_platforms_use_select(self, platform):
        assert default_strategy_name(platform=platform, environ={}) == "Select"

    @pytest.mark.parametrize("value", ["1", "true", "YES"])
    def test_environment_forces_select(self, value):
        env = {FORCE_SELECT_ENV: value}
        assert is_select_forced(env) is True
        assert default_strategy_name(platform="linux", environ=env) == "Select"

    def test_environment_false_value_ignored(self):
        assert is_select_forced({FORCE_SELECT_ENV: "0"}) is False

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv(FORCE_SELECT_ENV, "1")
        assert default_strategy_name(platform="linux") == "Select"


class TestLoadEnvironment:
    def test_dotenv_file_values(self, tmp_path, monkeypatch):
        monkeypatch.delenv(FORCE_SELECT_ENV, raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text(f"{FORCE_SELECT_ENV}=yes\n")
        env = load_environment(str(env_file))
        assert env[FORCE_SELECT_ENV] == "yes"
        assert is_select_forced(env) is True

    def test_process_environment_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv(FORCE_SELECT_ENV, "0")
        env_file = tmp_path / ".env"
        env_file.write_text(f"{FORCE_SELECT_ENV}=1\n")
        assert load_environment(str(env_file))[FORCE_SELECT_ENV] == "0"

    def test_without_file(self, monkeypatch):
        monkeypatch.setenv("SOME_VAR", "value")
        assert load_environment()["SOME_VAR"] == "value"
