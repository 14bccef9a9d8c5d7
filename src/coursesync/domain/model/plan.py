"""Pricing plans owned by the external plan store."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Final

from coursesync.domain.model.enums import BillingKind

if TYPE_CHECKING:
    from datetime import datetime

    from coursesync.domain.model.enums import CyclePeriod

type PlanId = int

OWNER_META_KEY: Final[str] = "course_id"
"""Plan metadata key carrying the reverse-ownership tag."""
MANAGED_META_KEY: Final[str] = "managed"


@dataclass(frozen=True, slots=True, kw_only=True)
class PlanTerms:
    """Commercial terms of a plan, as written to the plan store."""

    name: str
    initial_amount: float = 0.0
    billing_amount: float = 0.0
    cycle_number: int = 0
    cycle_period: CyclePeriod | None = None
    billing_limit: int = 0

    def __post_init__(self) -> None:
        if self.initial_amount < 0 or self.billing_amount < 0:
            raise ValueError("Plan amounts must be non-negative")
        if self.cycle_number < 0 or self.billing_limit < 0:
            raise ValueError("Plan cycle values must be non-negative")

    @property
    def billing_kind(self) -> BillingKind:
        if self.cycle_number > 0 and self.billing_amount > 0:
            return BillingKind.RECURRING
        return BillingKind.ONE_TIME

    @property
    def is_recurring(self) -> bool:
        return self.billing_kind is BillingKind.RECURRING

    @property
    def amount(self) -> float:
        """Amount charged per cycle for recurring plans, once otherwise."""
        return self.billing_amount if self.is_recurring else self.initial_amount


@dataclass(eq=False, slots=True, kw_only=True)
class PricingPlan:
    """A plan record as seen through the plan store.

    ``owner_course_id`` is the reverse-ownership tag written when this system
    creates the plan. Legacy records and plans created through the external
    system's own UI may not carry it.
    """

    terms: PlanTerms
    id: PlanId | None = None
    owner_course_id: int | None = None
    managed: bool = False
    created_at: datetime | None = None

    @property
    def billing_kind(self) -> BillingKind:
        return self.terms.billing_kind

    @property
    def is_recurring(self) -> bool:
        return self.terms.is_recurring

    def with_terms(self, terms: PlanTerms) -> PricingPlan:
        return replace(self, terms=terms)
