"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class PricingType(StrEnum):
    FREE = "free"
    PAID = "paid"


class SellingOption(StrEnum):
    """How a paid course is sold."""

    ONE_TIME = "one_time"
    SUBSCRIPTION = "subscription"
    BOTH = "both"
    MEMBERSHIP = "membership"
    ALL = "all"


class BillingKind(StrEnum):
    ONE_TIME = "one_time"
    RECURRING = "recurring"


class CyclePeriod(StrEnum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
