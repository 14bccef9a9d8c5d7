"""Public interface for the plan API adapter."""

from __future__ import annotations

from .client import HttpPlanStore, PlanApiError
from .schema import PlanPayload, PlanWritePayload
from .translator import create_payload, parse_plan, terms_payload

__all__ = [
    "HttpPlanStore",
    "PlanApiError",
    "PlanPayload",
    "PlanWritePayload",
    "create_payload",
    "parse_plan",
    "terms_payload",
]
