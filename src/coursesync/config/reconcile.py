"""Timing defaults for reconcile runs and their triggers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .env import env_seconds
from .errors import InvalidConfigurationError

DEFAULT_LOCK_TTL_SECONDS = 10.0
DEFAULT_FOLLOWUP_DELAY_SECONDS = 3.0


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    lock_ttl_seconds: float = DEFAULT_LOCK_TTL_SECONDS
    followup_delay_seconds: float = DEFAULT_FOLLOWUP_DELAY_SECONDS

    def __post_init__(self) -> None:
        if self.lock_ttl_seconds <= 0:
            raise ValueError("Lock TTL must be positive")
        if self.followup_delay_seconds < 0:
            raise ValueError("Follow-up delay must be non-negative")

    @property
    def lock_ttl(self) -> timedelta:
        return timedelta(seconds=self.lock_ttl_seconds)


def get_reconcile_config() -> ReconcileConfig:
    lock_ttl_seconds = env_seconds("COURSESYNC_LOCK_TTL_SECONDS", DEFAULT_LOCK_TTL_SECONDS)
    if lock_ttl_seconds == 0:
        raise InvalidConfigurationError(
            "COURSESYNC_LOCK_TTL_SECONDS", "0", "a positive number of seconds"
        )
    return ReconcileConfig(
        lock_ttl_seconds=lock_ttl_seconds,
        followup_delay_seconds=env_seconds(
            "COURSESYNC_FOLLOWUP_DELAY_SECONDS",
            DEFAULT_FOLLOWUP_DELAY_SECONDS,
        ),
    )
