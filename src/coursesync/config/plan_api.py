"""Remote plan store API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_seconds, optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

PLAN_API_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class PlanApiConfig:
    """Holds plan store API configuration values."""

    base_url: str
    token: str | None
    resilience: ResilienceConfig


def plan_api_enabled() -> bool:
    return optional_env_var("PLAN_API_BASE_URL") is not None


def get_plan_api_config(*, resilience: ResilienceConfig | None = None) -> PlanApiConfig:
    values = require_env_vars(("PLAN_API_BASE_URL",))
    base_url = values["PLAN_API_BASE_URL"].strip().rstrip("/") + "/"
    token = optional_env_var("PLAN_API_TOKEN")
    return PlanApiConfig(
        base_url=base_url,
        token=token,
        resilience=resilience
        or ResilienceConfig(
            name="plan_api",
            base_url=base_url,
            timeout_seconds=env_seconds("PLAN_API_TIMEOUT_SECONDS", PLAN_API_TIMEOUT_SECONDS),
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            bearer_token=token,
        ),
    )
