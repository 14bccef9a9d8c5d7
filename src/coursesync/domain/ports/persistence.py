"""Ports for the externally owned stores the engine reconciles."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from coursesync.domain.model import Course, CourseId, PlanId, PlanTerms, PricingPlan


@runtime_checkable
class PlanStore(Protocol):
    """Accessor for plan records owned by the external plan system."""

    def get(self, plan_id: PlanId) -> PricingPlan | None: ...

    def exists(self, plan_id: PlanId) -> bool: ...

    def create(self, plan: PricingPlan) -> PlanId:
        """Persist ``plan`` including its owner tag and managed flag."""
        ...

    def update(self, plan_id: PlanId, terms: PlanTerms) -> None: ...

    def delete(self, plan_id: PlanId) -> None:
        """Delete the primary record. Deleting an absent id is a no-op."""
        ...

    def find_by_owner(self, course_id: CourseId) -> list[PlanId]:
        """Return ids of plans whose reverse-ownership tag names ``course_id``."""
        ...

    def delete_metadata(self, plan_id: PlanId) -> None: ...

    def delete_category_relations(self, plan_id: PlanId) -> None: ...


@runtime_checkable
class AssociationStore(Protocol):
    """Many-to-many link rows between courses and plans."""

    def insert(self, course_id: CourseId, plan_id: PlanId) -> None:
        """Link ``course_id`` and ``plan_id``; an existing link is left alone."""
        ...

    def delete(self, course_id: CourseId, plan_id: PlanId) -> None: ...

    def delete_by_course(self, course_id: CourseId) -> None: ...

    def delete_by_plan(self, plan_id: PlanId) -> None: ...

    def list_by_course(self, course_id: CourseId) -> list[PlanId]: ...


@runtime_checkable
class CourseRepository(Protocol):
    """Read access to courses plus the cached plan id list."""

    def add(self, course: Course) -> None: ...

    def get(self, course_id: CourseId) -> Course | None: ...

    def cached_plan_ids(self, course_id: CourseId) -> list[PlanId]: ...

    def write_cached_plan_ids(self, course_id: CourseId, plan_ids: Sequence[PlanId]) -> None:
        """Replace the cache; an empty sequence removes it."""
        ...

    def courses_caching(self, plan_id: PlanId) -> list[CourseId]: ...
