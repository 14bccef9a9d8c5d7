"""Read path that loads a course's plans for display and heals as it goes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .repair import LazyRepair
from .resolve import PlanResolver

if TYPE_CHECKING:
    from coursesync.domain.model import CourseId, PlanId, PricingPlan
    from coursesync.domain.ports.unit_of_work import ReconciliationUnitOfWork


@dataclass(slots=True)
class CoursePlanReader:
    resolver: PlanResolver = field(default_factory=PlanResolver)
    repairer: LazyRepair = field(default_factory=LazyRepair)

    def load(self, uow: ReconciliationUnitOfWork, course_id: CourseId) -> list[PricingPlan]:
        """Return the plans cached for ``course_id``.

        An empty cache falls back to a full resolve. A cached id that does not
        resolve triggers lazy repair and loading continues with what is left.
        """

        repositories = uow.repositories
        pending: list[PlanId] = repositories.courses.cached_plan_ids(course_id)
        if not pending:
            pending = list(self.resolver.resolve(uow, course_id).valid_ids)

        plans: list[PricingPlan] = []
        loaded: set[PlanId] = set()
        while pending:
            plan_id = pending.pop(0)
            plan = repositories.plans.get(plan_id)
            if plan is None:
                remaining = self.repairer.repair(uow, course_id, plan_id)
                pending = [other for other in remaining if other not in loaded]
                continue
            plans.append(plan)
            loaded.add(plan_id)
        return plans
