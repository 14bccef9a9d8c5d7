"""Port for the short-lived per-course reconcile lock."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime, timedelta

    from coursesync.domain.model import CourseId


@dataclass(frozen=True, slots=True)
class LockLease:
    """Proof of holding the lock for one course until ``expires_at``."""

    course_id: CourseId
    token: str
    expires_at: datetime


@runtime_checkable
class ReconcileLock(Protocol):
    """Non-blocking advisory lock keyed by course id."""

    def acquire(self, course_id: CourseId, *, ttl: timedelta) -> LockLease | None:
        """Return a lease, or ``None`` while another unexpired lease is held."""
        ...

    def release(self, lease: LockLease) -> None:
        """Release ``lease``; a lease that already expired or was taken over is ignored."""
        ...
