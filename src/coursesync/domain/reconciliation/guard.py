"""Per-course advisory locking around reconcile runs."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from coursesync.domain.model import CourseId
    from coursesync.domain.ports.locking import ReconcileLock

log = getLogger(__name__)

DEFAULT_LOCK_TTL = timedelta(seconds=10)


class LockUnavailableError(RuntimeError):
    """Raised when the lock store could not be asked for a lease at all."""

    def __init__(self, course_id: CourseId) -> None:
        super().__init__(f"Reconcile lock for course {course_id} could not be acquired")
        self.course_id = course_id


@dataclass(slots=True)
class ConcurrencyGuard:
    """Let at most one reconcile run per course past the lock.

    Acquisition never waits: a held lock means another run is already
    handling the course. A crashed holder is recovered only by TTL expiry.
    A lock store that fails outright raises ``LockUnavailableError``.
    """

    lock: ReconcileLock
    ttl: timedelta = DEFAULT_LOCK_TTL

    @contextmanager
    def hold(self, course_id: CourseId) -> Iterator[bool]:
        try:
            lease = self.lock.acquire(course_id, ttl=self.ttl)
        except Exception as exc:
            raise LockUnavailableError(course_id) from exc
        if lease is None:
            log.info("Reconcile already in progress for course %s; skipping", course_id)
            yield False
            return
        try:
            yield True
        finally:
            try:
                self.lock.release(lease)
            except Exception:
                log.exception(
                    "Failed to release reconcile lock for course %s; it expires at %s",
                    course_id,
                    lease.expires_at,
                )
