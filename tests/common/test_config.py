from __future__ import annotations

import logging
import os
from datetime import timedelta

import pytest

from coursesync.config import (
    InvalidConfigurationError,
    MissingConfigurationError,
    ReconcileConfig,
    configure_logging,
    env_seconds,
    get_reconcile_config,
    optional_env_var,
    parse_log_level,
    plan_api_enabled,
    require_env_vars,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRESENT_VAR", "value")
    monkeypatch.delenv("MISSING_VAR", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["PRESENT_VAR", "MISSING_VAR"])

    assert "MISSING_VAR" in str(exc.value)
    assert "PRESENT_VAR" not in str(exc.value)


def test_optional_env_var_treats_blank_as_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")

    assert optional_env_var("EXAMPLE_VAR") is None


def test_env_seconds_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EXAMPLE_SECONDS", raising=False)

    assert env_seconds("EXAMPLE_SECONDS", 2.5) == 2.5


@pytest.mark.parametrize("raw", ["soon", "-1"])
def test_env_seconds_rejects_bad_values(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("EXAMPLE_SECONDS", raw)

    with pytest.raises(InvalidConfigurationError) as exc:
        env_seconds("EXAMPLE_SECONDS", 1.0)

    assert exc.value.name == "EXAMPLE_SECONDS"
    assert exc.value.value == raw


def test_reconcile_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("COURSESYNC_LOCK_TTL_SECONDS", raising=False)
    monkeypatch.delenv("COURSESYNC_FOLLOWUP_DELAY_SECONDS", raising=False)

    config = get_reconcile_config()

    assert config.lock_ttl == timedelta(seconds=10)
    assert config.followup_delay_seconds == 3.0


def test_reconcile_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COURSESYNC_LOCK_TTL_SECONDS", "30")
    monkeypatch.setenv("COURSESYNC_FOLLOWUP_DELAY_SECONDS", "0")

    config = get_reconcile_config()

    assert config.lock_ttl_seconds == 30.0
    assert config.followup_delay_seconds == 0.0


def test_reconcile_config_rejects_zero_ttl(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COURSESYNC_LOCK_TTL_SECONDS", "0")

    with pytest.raises(InvalidConfigurationError):
        get_reconcile_config()


def test_reconcile_config_validates_direct_construction() -> None:
    with pytest.raises(ValueError, match="positive"):
        ReconcileConfig(lock_ttl_seconds=-1)


def test_plan_api_enabled_follows_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PLAN_API_BASE_URL", raising=False)
    assert not plan_api_enabled()

    monkeypatch.setenv("PLAN_API_BASE_URL", "https://plans.example.test")
    assert plan_api_enabled()
    assert os.getenv("PLAN_API_BASE_URL") == "https://plans.example.test"


def test_parse_log_level() -> None:
    assert parse_log_level(" debug ") == logging.DEBUG

    with pytest.raises(ValueError, match="Unknown log level"):
        parse_log_level("chatty")


def test_configure_logging_quiets_http_client_logs() -> None:
    configure_logging(level=logging.INFO, force=True)
    assert logging.getLogger("httpx").level == logging.WARNING

    configure_logging(level=logging.DEBUG, force=True)
    assert logging.getLogger("httpx").level == logging.DEBUG
