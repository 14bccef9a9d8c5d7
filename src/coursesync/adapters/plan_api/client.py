"""Plan store backed by the external plan system's HTTP API."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from contextlib import suppress
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, Self

import httpx
from pydantic import ValidationError

from coursesync.adapters.http_resilience import ResilienceConfig, ResilientClient
from coursesync.config.plan_api import PlanApiConfig, get_plan_api_config

from .schema import CreatedPlanResponse, ErrorResponse, PlanIdListResponse, PlanPayload
from .translator import create_payload, parse_plan, terms_payload

if TYPE_CHECKING:
    from types import TracebackType

    from coursesync.domain.model import CourseId, PlanId, PlanTerms, PricingPlan
    from coursesync.domain.ports import PlanStore

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class PlanApiError(RuntimeError):
    """Raised when the plan API answers with an unexpected status or payload."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _raise_for_status(response: httpx.Response, *, action: str) -> None:
    if response.is_success:
        return
    message = response.reason_phrase or "request failed"
    with suppress(ValueError, ValidationError):
        message = ErrorResponse.model_validate(response.json()).message or message
    log.error(f"Plan API {action} failed with {response.status_code}: {message}")
    raise PlanApiError(f"{action}: {message}", status_code=response.status_code)


@dataclass(slots=True)
class HttpPlanStore:
    """Synchronous plan store facade over the async resilient client.

    One client, and so one rate limiter, serves every call until the store
    is closed. Calls run on an event loop owned by the store. Responses are
    never cached between calls.
    A 404 on reads means the plan is gone; on deletes it means there is
    nothing left to delete.
    """

    config: PlanApiConfig = field(default_factory=get_plan_api_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _runner: asyncio.Runner | None = field(default=None, init=False, repr=False)
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the shared client and the event loop it runs on."""

        runner, client = self._runner, self._client
        self._runner = None
        self._client = None
        if runner is None:
            return
        try:
            if client is not None:
                runner.run(client.aclose())
        finally:
            runner.close()

    def get(self, plan_id: PlanId) -> PricingPlan | None:
        return self._run(self._get(plan_id))

    def exists(self, plan_id: PlanId) -> bool:
        return self.get(plan_id) is not None

    def create(self, plan: PricingPlan) -> PlanId:
        return self._run(self._create(plan))

    def update(self, plan_id: PlanId, terms: PlanTerms) -> None:
        self._run(self._send("PUT", f"plans/{plan_id}", json=terms_payload(terms).model_dump()))

    def delete(self, plan_id: PlanId) -> None:
        self._run(self._send("DELETE", f"plans/{plan_id}", missing_ok=True))

    def find_by_owner(self, course_id: CourseId) -> list[PlanId]:
        return self._run(self._find_by_owner(course_id))

    def delete_metadata(self, plan_id: PlanId) -> None:
        self._run(self._send("DELETE", f"plans/{plan_id}/meta", missing_ok=True))

    def delete_category_relations(self, plan_id: PlanId) -> None:
        self._run(self._send("DELETE", f"plans/{plan_id}/categories", missing_ok=True))

    def _run[T](self, coroutine: Coroutine[Any, Any, T]) -> T:
        if self._runner is None:
            self._runner = asyncio.Runner()
        return self._runner.run(coroutine)

    @property
    def client(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.config.resilience)
        return self._client

    async def _get(self, plan_id: PlanId) -> PricingPlan | None:
        response = await self.client.get(f"plans/{plan_id}")
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        _raise_for_status(response, action=f"get plan {plan_id}")
        try:
            payload = PlanPayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise PlanApiError(f"Unexpected payload for plan {plan_id}") from exc
        return parse_plan(payload)

    async def _create(self, plan: PricingPlan) -> PlanId:
        body = create_payload(plan).model_dump(exclude_none=True)
        response = await self.client.post("plans", json=body)
        _raise_for_status(response, action="create plan")
        try:
            created = CreatedPlanResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise PlanApiError("Plan API did not return the new plan id") from exc
        log.debug(f"Created plan {created.id} ({plan.terms.name})")
        return created.id

    async def _find_by_owner(self, course_id: CourseId) -> list[PlanId]:
        response = await self.client.get("plans", params={"owner_course_id": course_id})
        _raise_for_status(response, action=f"find plans for course {course_id}")
        try:
            listed = PlanIdListResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise PlanApiError("Unexpected plan id list payload") from exc
        return sorted(listed.plan_ids)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json: object = None,
        missing_ok: bool = False,
    ) -> None:
        response = await self.client.request(method, url, json=json)
        if missing_ok and response.status_code == httpx.codes.NOT_FOUND:
            return
        _raise_for_status(response, action=f"{method} {url}")


if TYPE_CHECKING:
    _store_check: PlanStore = HttpPlanStore()
