"""Shared reconciliation contract components.

This module intentionally holds only:
- the resolved plan set handed from the resolver to its callers
- decision/step enums and the outcome records built from them
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coursesync.domain.model import CourseId, PlanId


@dataclass(frozen=True, slots=True, kw_only=True)
class PlanResolution:
    """Verified, classified view of the plans attached to one course.

    All id tuples are sorted ascending, which is creation order for plan
    stores that hand out increasing ids.
    """

    course_id: CourseId
    valid_ids: tuple[PlanId, ...] = ()
    one_time_ids: tuple[PlanId, ...] = ()
    recurring_ids: tuple[PlanId, ...] = ()
    pruned_ids: tuple[PlanId, ...] = ()
    unverified_ids: tuple[PlanId, ...] = ()

    def __post_init__(self) -> None:
        if set(self.one_time_ids) & set(self.recurring_ids):
            raise ValueError("A plan cannot be both one-time and recurring")
        if sorted((*self.one_time_ids, *self.recurring_ids)) != list(self.valid_ids):
            raise ValueError("valid_ids must be the union of one-time and recurring ids")


class Decision(StrEnum):
    """Branch taken by one reconcile run."""

    SKIPPED_LOCKED = "skipped_locked"
    SKIPPED_MISSING_COURSE = "skipped_missing_course"
    ABORTED = "aborted"
    CLEAR_ALL = "clear_all"
    KEEP_RECURRING = "keep_recurring"
    ENSURE_ONE_TIME = "ensure_one_time"
    KEEP_ALL = "keep_all"


class Step(StrEnum):
    """Individually fallible operations against the external stores."""

    ACQUIRE_LOCK = "acquire_lock"
    LOAD_COURSE = "load_course"
    LIST_ASSOCIATIONS = "list_associations"
    READ_CACHE = "read_cache"
    FIND_BY_OWNER = "find_by_owner"
    VERIFY = "verify"
    UNMAP = "unmap"
    FULL_DELETE = "full_delete"
    CLEAR_ASSOCIATIONS = "clear_associations"
    CREATE_PLAN = "create_plan"
    UPDATE_PLAN = "update_plan"
    ASSOCIATE = "associate"
    WRITE_CACHE = "write_cache"


@dataclass(frozen=True, slots=True, kw_only=True)
class StepFailure:
    """A step that raised; the run carried on without it."""

    step: Step
    course_id: CourseId
    plan_id: PlanId | None = None
    decision: Decision | None = None
    error: str = ""


@dataclass(slots=True, kw_only=True)
class ReconcileOutcome:
    """Decision summary of one reconcile run."""

    course_id: CourseId
    decision: Decision
    resolution: PlanResolution | None = None
    deleted_ids: list[PlanId] = field(default_factory=list["PlanId"])
    created_id: PlanId | None = None
    updated_id: PlanId | None = None
    cached_ids: tuple[PlanId, ...] = ()
    failures: list[StepFailure] = field(default_factory=list[StepFailure])

    @property
    def skipped(self) -> bool:
        return self.decision in {
            Decision.SKIPPED_LOCKED,
            Decision.SKIPPED_MISSING_COURSE,
            Decision.ABORTED,
        }

    @property
    def succeeded(self) -> bool:
        return not self.skipped and not self.failures
