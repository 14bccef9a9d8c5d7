"""Pydantic models describing the plan API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class PlanApiBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PlanPayload(PlanApiBaseModel):
    """A plan record as returned by ``GET plans/{id}``.

    Amounts arrive as strings from some deployments, so they are coerced.
    """

    id: int
    name: str = ""
    initial_payment: float = 0.0
    billing_amount: float = 0.0
    cycle_number: int = 0
    cycle_period: str | None = None
    billing_limit: int = 0
    created_at: str | None = None
    meta: dict[str, str | None] = Field(default_factory=dict)

    _normalize_period = field_validator("cycle_period", mode="before")(_blank_to_none)

    @field_validator("initial_payment", "billing_amount", mode="before")
    @classmethod
    def _blank_amount(cls, value: object) -> object:
        return 0.0 if _blank_to_none(value) is None else value

    @field_validator("cycle_number", "billing_limit", mode="before")
    @classmethod
    def _blank_count(cls, value: object) -> object:
        return 0 if _blank_to_none(value) is None else value


class PlanWritePayload(PlanApiBaseModel):
    name: str
    initial_payment: float
    billing_amount: float
    cycle_number: int
    cycle_period: str | None
    billing_limit: int
    meta: dict[str, str] | None = None


class CreatedPlanResponse(PlanApiBaseModel):
    id: int


class PlanIdListResponse(PlanApiBaseModel):
    plan_ids: list[int] = Field(default_factory=list[int], alias="ids")


class ErrorResponse(PlanApiBaseModel):
    code: str | None = None
    message: str = ""
