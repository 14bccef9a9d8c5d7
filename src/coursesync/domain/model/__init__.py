"""Public domain model surface."""

from __future__ import annotations

from coursesync.domain.model.course import Course, CourseId, PricingContext
from coursesync.domain.model.enums import BillingKind, CyclePeriod, PricingType, SellingOption
from coursesync.domain.model.plan import (
    MANAGED_META_KEY,
    OWNER_META_KEY,
    PlanId,
    PlanTerms,
    PricingPlan,
)

__all__ = [
    "MANAGED_META_KEY",
    "OWNER_META_KEY",
    "BillingKind",
    "Course",
    "CourseId",
    "CyclePeriod",
    "PlanId",
    "PlanTerms",
    "PricingContext",
    "PricingPlan",
    "PricingType",
    "SellingOption",
]
