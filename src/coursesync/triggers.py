"""Entry points fired when a course's pricing configuration is saved."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from coursesync.config.reconcile import DEFAULT_FOLLOWUP_DELAY_SECONDS

if TYPE_CHECKING:
    from collections.abc import Callable

    from coursesync.domain.model import CourseId, PricingContext
    from coursesync.domain.reconciliation import ReconcileOutcome

log = getLogger(__name__)

type ReconcileCallable = Callable[[CourseId, PricingContext | None], ReconcileOutcome]


@dataclass(slots=True)
class TriggerDispatcher:
    """Run a reconcile on save and once more after the save has settled.

    Course fields are often written in several steps, so the immediate run can
    see a half-written configuration. The delayed follow-up re-reads the stored
    course. Saving again before the follow-up fires pushes it back.
    """

    reconcile: ReconcileCallable
    followup_delay: float = DEFAULT_FOLLOWUP_DELAY_SECONDS
    _timers: dict[CourseId, threading.Timer] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _closed: bool = field(default=False, init=False)

    def course_saved(
        self,
        course_id: CourseId,
        pricing: PricingContext | None = None,
    ) -> ReconcileOutcome:
        try:
            return self.reconcile(course_id, pricing)
        finally:
            self._schedule_followup(course_id)

    def pending(self) -> list[CourseId]:
        with self._lock:
            return sorted(self._timers)

    def wait(self, timeout: float | None = None) -> None:
        """Block until the currently scheduled follow-ups have finished."""

        with self._lock:
            timers = list(self._timers.values())
        for timer in timers:
            timer.join(timeout)

    def shutdown(self) -> None:
        """Cancel pending follow-ups and refuse new ones."""

        with self._lock:
            self._closed = True
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        if timers:
            log.info("Cancelled %d pending reconcile follow-up(s)", len(timers))

    def _schedule_followup(self, course_id: CourseId) -> None:
        with self._lock:
            if self._closed:
                return
            previous = self._timers.pop(course_id, None)
            if previous is not None:
                previous.cancel()
            timer = threading.Timer(self.followup_delay, self._followup, args=(course_id,))
            timer.name = f"reconcile-followup-{course_id}"
            timer.daemon = True
            self._timers[course_id] = timer
            timer.start()
        log.debug(
            "Scheduled reconcile follow-up for course %s in %.1fs", course_id, self.followup_delay
        )

    def _followup(self, course_id: CourseId) -> None:
        try:
            self.reconcile(course_id, None)
        except Exception:
            log.exception("Follow-up reconcile for course %s failed", course_id)
        finally:
            with self._lock:
                if self._timers.get(course_id) is threading.current_thread():
                    del self._timers[course_id]
