"""Best-effort execution of individual store operations.

The stores offer no cross-store transaction. Every mutation is committed on
its own; a failing step is rolled back, logged with its context and recorded,
and the caller moves on to the next step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .contracts import Decision, Step, StepFailure

if TYPE_CHECKING:
    from collections.abc import Callable

    from coursesync.domain.model import CourseId, PlanId
    from coursesync.domain.ports.unit_of_work import ReconciliationUnitOfWork

log = getLogger(__name__)


@dataclass(slots=True)
class StepRunner:
    uow: ReconciliationUnitOfWork
    course_id: CourseId
    decision: Decision | None = None
    failures: list[StepFailure] = field(default_factory=list[StepFailure])

    def run(
        self,
        step: Step,
        action: Callable[[], object],
        *,
        plan_id: PlanId | None = None,
    ) -> bool:
        """Run a mutation and commit it; return whether it went through."""

        try:
            action()
            self.uow.commit()
        except Exception as exc:  # noqa: BLE001
            self._record_failure(step, plan_id, exc)
            return False
        return True

    def produce[T](
        self,
        step: Step,
        action: Callable[[], T],
        *,
        plan_id: PlanId | None = None,
    ) -> T | None:
        """Run a mutation that yields a value; ``None`` when it failed."""

        try:
            value = action()
            self.uow.commit()
        except Exception as exc:  # noqa: BLE001
            self._record_failure(step, plan_id, exc)
            return None
        return value

    def read[T](
        self,
        step: Step,
        action: Callable[[], T],
        *,
        default: T,
        plan_id: PlanId | None = None,
    ) -> T:
        """Run a read; ``default`` stands in for the result when it failed."""

        try:
            return action()
        except Exception as exc:  # noqa: BLE001
            self._record_failure(step, plan_id, exc)
            return default

    def skip(self, step: Step, reason: str, *, plan_id: PlanId | None = None) -> None:
        """Record a step left out on purpose; nothing is rolled back."""

        log.warning(
            "Step %s skipped: course=%s plan=%s decision=%s: %s",
            step,
            self.course_id,
            plan_id,
            self.decision,
            reason,
        )
        self.failures.append(
            StepFailure(
                step=step,
                course_id=self.course_id,
                plan_id=plan_id,
                decision=self.decision,
                error=f"skipped: {reason}",
            )
        )

    def _record_failure(self, step: Step, plan_id: PlanId | None, exc: Exception) -> None:
        self.uow.rollback()
        log.error(
            "Step %s failed: course=%s plan=%s decision=%s",
            step,
            self.course_id,
            plan_id,
            self.decision,
            exc_info=exc,
        )
        self.failures.append(
            StepFailure(
                step=step,
                course_id=self.course_id,
                plan_id=plan_id,
                decision=self.decision,
                error=f"{type(exc).__name__}: {exc}",
            )
        )
