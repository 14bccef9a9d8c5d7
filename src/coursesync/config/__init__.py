"""Application configuration helpers."""

from __future__ import annotations

from .env import env_seconds, optional_env_var, require_env_vars
from .errors import ConfigurationError, InvalidConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging, parse_log_level
from .plan_api import PlanApiConfig, get_plan_api_config, plan_api_enabled
from .reconcile import ReconcileConfig, get_reconcile_config
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "InvalidConfigurationError",
    "MissingConfigurationError",
    "PlanApiConfig",
    "RateLimit",
    "ReconcileConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "env_seconds",
    "get_database_config",
    "get_database_uri",
    "get_plan_api_config",
    "get_reconcile_config",
    "get_storage_config",
    "optional_env_var",
    "parse_log_level",
    "plan_api_enabled",
    "require_env_vars",
]
