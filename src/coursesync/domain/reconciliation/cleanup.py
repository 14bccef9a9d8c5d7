"""Removal of plans from every place they can appear.

``full_delete`` is global: it does not check whether other courses still
reference the plan. ``unmap`` only detaches one course from one plan and
leaves the plan record alone.

Neither function commits; callers run them as a single step.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coursesync.domain.model import CourseId, PlanId
    from coursesync.domain.ports.unit_of_work import ReconciliationRepositories

log = getLogger(__name__)


def full_delete(repositories: ReconciliationRepositories, plan_id: PlanId) -> list[CourseId]:
    """Delete ``plan_id`` everywhere and return the courses whose cache was pruned."""

    repositories.associations.delete_by_plan(plan_id)
    repositories.plans.delete_metadata(plan_id)
    repositories.plans.delete_category_relations(plan_id)
    repositories.plans.delete(plan_id)

    pruned: list[CourseId] = []
    for course_id in repositories.courses.courses_caching(plan_id):
        _drop_from_cache(repositories, course_id, plan_id)
        pruned.append(course_id)

    log.info("Deleted plan %s (caches pruned for courses %s)", plan_id, pruned)
    return pruned


def unmap(repositories: ReconciliationRepositories, course_id: CourseId, plan_id: PlanId) -> None:
    """Detach ``plan_id`` from ``course_id`` only."""

    repositories.associations.delete(course_id, plan_id)
    _drop_from_cache(repositories, course_id, plan_id)
    log.debug("Unmapped plan %s from course %s", plan_id, course_id)


def _drop_from_cache(
    repositories: ReconciliationRepositories,
    course_id: CourseId,
    plan_id: PlanId,
) -> None:
    cached = repositories.courses.cached_plan_ids(course_id)
    if plan_id not in cached:
        return
    repositories.courses.write_cached_plan_ids(
        course_id,
        [cached_id for cached_id in cached if cached_id != plan_id],
    )
