"""On-the-spot cleanup for display paths that hit a dangling plan id.

Repair only ever removes links, so it runs without the reconcile lock and is
safe next to a concurrent reconcile.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from .cleanup import unmap
from .contracts import Step
from .steps import StepRunner

if TYPE_CHECKING:
    from coursesync.domain.model import CourseId, PlanId
    from coursesync.domain.ports.unit_of_work import ReconciliationUnitOfWork

log = getLogger(__name__)


@dataclass(slots=True)
class LazyRepair:
    def repair(
        self,
        uow: ReconciliationUnitOfWork,
        course_id: CourseId,
        plan_id: PlanId,
    ) -> list[PlanId]:
        """Unmap ``plan_id`` from ``course_id`` and return the remaining verified ids.

        The stale id is confirmed absent before it is unmapped, so a transient
        lookup failure on the caller's side never detaches a live plan. Other
        cached ids that turn out to be dangling are unmapped as well; ids that
        cannot be verified right now are left cached but not returned.
        """

        runner = StepRunner(uow, course_id=course_id)
        repositories = uow.repositories

        self._unmap_if_absent(runner, plan_id)

        cached = runner.read(
            Step.READ_CACHE,
            partial(repositories.courses.cached_plan_ids, course_id),
            default=[],
        )
        remaining: list[PlanId] = []
        for cached_id in cached:
            if cached_id == plan_id:
                continue
            if self._unmap_if_absent(runner, cached_id) is False:
                remaining.append(cached_id)

        log.info(
            "Repaired course %s after dangling plan %s; remaining=%s",
            course_id,
            plan_id,
            remaining,
        )
        return remaining

    @staticmethod
    def _unmap_if_absent(runner: StepRunner, plan_id: PlanId) -> bool | None:
        """Return whether ``plan_id`` was dangling, or ``None`` when unknown."""

        repositories = runner.uow.repositories
        exists = runner.read(
            Step.VERIFY,
            partial(repositories.plans.exists, plan_id),
            default=None,
            plan_id=plan_id,
        )
        if exists is None:
            return None
        if exists:
            return False
        runner.run(
            Step.UNMAP,
            partial(unmap, repositories, runner.course_id, plan_id),
            plan_id=plan_id,
        )
        return True
