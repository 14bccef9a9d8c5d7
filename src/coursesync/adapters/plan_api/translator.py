"""Translate plan API payloads to and from domain plans."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from coursesync.domain.model import (
    MANAGED_META_KEY,
    OWNER_META_KEY,
    CyclePeriod,
    PlanTerms,
    PricingPlan,
)

from .schema import PlanPayload, PlanWritePayload

if TYPE_CHECKING:
    from collections.abc import Mapping

log = getLogger(__name__)


def _parse_period(value: str | None) -> CyclePeriod | None:
    if value is None:
        return None
    try:
        return CyclePeriod(value.lower())
    except ValueError:
        log.warning("Unknown cycle period %r; treating plan as non-recurring", value)
        return None


def _parse_created_at(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _parse_owner(meta: Mapping[str, str | None]) -> int | None:
    raw = meta.get(OWNER_META_KEY)
    if raw is None or not raw.strip().isdigit():
        return None
    return int(raw)


def parse_plan(payload: PlanPayload | Mapping[str, object]) -> PricingPlan:
    plan = payload if isinstance(payload, PlanPayload) else PlanPayload.model_validate(payload)
    return PricingPlan(
        id=plan.id,
        terms=PlanTerms(
            name=plan.name,
            initial_amount=plan.initial_payment,
            billing_amount=plan.billing_amount,
            cycle_number=plan.cycle_number,
            cycle_period=_parse_period(plan.cycle_period),
            billing_limit=plan.billing_limit,
        ),
        owner_course_id=_parse_owner(plan.meta),
        managed=plan.meta.get(MANAGED_META_KEY) == "1",
        created_at=_parse_created_at(plan.created_at),
    )


def terms_payload(terms: PlanTerms) -> PlanWritePayload:
    return PlanWritePayload(
        name=terms.name,
        initial_payment=terms.initial_amount,
        billing_amount=terms.billing_amount,
        cycle_number=terms.cycle_number,
        cycle_period=terms.cycle_period.value.title() if terms.cycle_period else None,
        billing_limit=terms.billing_limit,
    )


def create_payload(plan: PricingPlan) -> PlanWritePayload:
    payload = terms_payload(plan.terms)
    meta: dict[str, str] = {}
    if plan.owner_course_id is not None:
        meta[OWNER_META_KEY] = str(plan.owner_course_id)
    if plan.managed:
        meta[MANAGED_META_KEY] = "1"
    return payload.model_copy(update={"meta": meta or None})
