"""Discovery of the plans really attached to a course.

Responsibilities of this stage:
- collect candidate ids from association rows (primary), the course cache
  (secondary), owner tags on plan records (tertiary) and trigger hints
- verify every candidate against the plan store
- unmap candidates that no longer resolve (self-heal write-back)
- classify survivors as one-time or recurring
- rewrite the course cache to exactly the verified ids

The cache is never trusted on its own. A candidate whose lookup fails is
reported as unverified and left where it is; only a confirmed absence is
healed.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from coursesync.domain.model import BillingKind

from .cleanup import unmap
from .contracts import PlanResolution, Step
from .steps import StepRunner

if TYPE_CHECKING:
    from collections.abc import Iterable

    from coursesync.domain.model import CourseId, PlanId, PricingPlan
    from coursesync.domain.ports.unit_of_work import ReconciliationUnitOfWork

log = getLogger(__name__)


class _Unverified:
    """Sentinel for plan lookups that raised."""


_UNVERIFIED = _Unverified()


def merge_candidates(*sources: Iterable[PlanId]) -> list[PlanId]:
    """Union ``sources`` keeping first-seen order and dropping non-positive ids."""

    seen: set[PlanId] = set()
    merged: list[PlanId] = []
    for source in sources:
        for plan_id in source:
            if plan_id <= 0 or plan_id in seen:
                continue
            seen.add(plan_id)
            merged.append(plan_id)
    return merged


@dataclass(slots=True)
class PlanResolver:
    """Merge-then-verify view over association rows, cache and owner tags."""

    def resolve(
        self,
        uow: ReconciliationUnitOfWork,
        course_id: CourseId,
        *,
        hinted_ids: Iterable[PlanId] = (),
        runner: StepRunner | None = None,
    ) -> PlanResolution:
        runner = runner or StepRunner(uow, course_id=course_id)
        repositories = uow.repositories

        no_ids: list[PlanId] = []
        candidates = merge_candidates(
            runner.read(
                Step.LIST_ASSOCIATIONS,
                partial(repositories.associations.list_by_course, course_id),
                default=no_ids,
            ),
            runner.read(
                Step.READ_CACHE,
                partial(repositories.courses.cached_plan_ids, course_id),
                default=no_ids,
            ),
            runner.read(
                Step.FIND_BY_OWNER,
                partial(repositories.plans.find_by_owner, course_id),
                default=no_ids,
            ),
            hinted_ids,
        )

        one_time: list[PlanId] = []
        recurring: list[PlanId] = []
        pruned: list[PlanId] = []
        unverified: list[PlanId] = []
        for plan_id in candidates:
            plan: PricingPlan | _Unverified | None = runner.read(
                Step.VERIFY,
                partial(repositories.plans.get, plan_id),
                default=_UNVERIFIED,
                plan_id=plan_id,
            )
            if isinstance(plan, _Unverified):
                unverified.append(plan_id)
                continue
            if plan is None:
                log.debug("Plan %s no longer exists; unmapping from course %s", plan_id, course_id)
                runner.run(
                    Step.UNMAP,
                    partial(unmap, repositories, course_id, plan_id),
                    plan_id=plan_id,
                )
                pruned.append(plan_id)
                continue
            if plan.billing_kind is BillingKind.RECURRING:
                recurring.append(plan_id)
            else:
                one_time.append(plan_id)

        resolution = PlanResolution(
            course_id=course_id,
            valid_ids=tuple(sorted((*one_time, *recurring))),
            one_time_ids=tuple(sorted(one_time)),
            recurring_ids=tuple(sorted(recurring)),
            pruned_ids=tuple(pruned),
            unverified_ids=tuple(unverified),
        )
        runner.run(
            Step.WRITE_CACHE,
            partial(repositories.courses.write_cached_plan_ids, course_id, resolution.valid_ids),
        )

        log.debug(
            "Resolved course %s: valid=%s one_time=%s recurring=%s pruned=%s unverified=%s",
            course_id,
            resolution.valid_ids,
            resolution.one_time_ids,
            resolution.recurring_ids,
            resolution.pruned_ids,
            resolution.unverified_ids,
        )
        return resolution
