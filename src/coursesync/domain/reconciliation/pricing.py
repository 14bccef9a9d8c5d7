"""Plan terms derived from a course's pricing configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from coursesync.domain.model import PlanTerms

if TYPE_CHECKING:
    from coursesync.domain.model import CourseId, PricingContext


def one_time_plan_name(course_id: CourseId, title: str | None) -> str:
    if title and title.strip():
        return f"{title.strip()} (One-time)"
    return f"One-time Plan for {course_id}"


def one_time_terms(course_id: CourseId, pricing: PricingContext) -> PlanTerms:
    """Terms of the single one-time plan a one-time course is sold through.

    The whole price is charged up front; there is no billing cycle.
    """

    price = pricing.price if pricing.price is not None and pricing.price > 0 else 0.0
    return PlanTerms(
        name=one_time_plan_name(course_id, pricing.title),
        initial_amount=float(price),
        billing_amount=0.0,
        cycle_number=0,
        cycle_period=None,
        billing_limit=0,
    )
