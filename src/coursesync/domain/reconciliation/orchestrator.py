"""Decision core: bring a course's plans in line with its pricing configuration.

One run is strictly sequential: lock, resolve, branch, mutate, rewrite the
cache, unlock. Mutations are best effort; a failing delete or create is
logged and recorded and the run moves on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from coursesync.domain.model import PricingPlan, SellingOption

from .cleanup import full_delete
from .contracts import Decision, ReconcileOutcome, Step, StepFailure
from .guard import LockUnavailableError
from .pricing import one_time_terms
from .resolve import PlanResolver
from .steps import StepRunner

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from coursesync.domain.model import Course, CourseId, PlanId, PricingContext
    from coursesync.domain.ports.unit_of_work import (
        ReconciliationRepositories,
        ReconciliationUnitOfWork,
    )

    from .contracts import PlanResolution
    from .guard import ConcurrencyGuard

log = getLogger(__name__)


class _Unavailable:
    """Sentinel for a course lookup that raised."""


_UNAVAILABLE = _Unavailable()


def decide(pricing: PricingContext) -> Decision:
    """Map a desired configuration onto the branch that enforces it."""

    if pricing.is_free:
        return Decision.CLEAR_ALL
    if pricing.selling_option is SellingOption.SUBSCRIPTION:
        return Decision.KEEP_RECURRING
    if pricing.selling_option is SellingOption.ONE_TIME:
        return Decision.ENSURE_ONE_TIME
    return Decision.KEEP_ALL


def _create_and_link(
    repositories: ReconciliationRepositories,
    course_id: CourseId,
    plan: PricingPlan,
) -> PlanId:
    plan_id = repositories.plans.create(plan)
    repositories.associations.insert(course_id, plan_id)
    return plan_id


@dataclass(slots=True)
class ReconciliationOrchestrator:
    unit_of_work_factory: Callable[[], ReconciliationUnitOfWork]
    guard: ConcurrencyGuard
    resolver: PlanResolver = field(default_factory=PlanResolver)

    def reconcile(
        self,
        course_id: CourseId,
        pricing: PricingContext | None = None,
    ) -> ReconcileOutcome:
        """Reconcile ``course_id`` against ``pricing`` (or the stored course)."""

        try:
            with self.guard.hold(course_id) as acquired:
                if not acquired:
                    return ReconcileOutcome(course_id=course_id, decision=Decision.SKIPPED_LOCKED)
                with self.unit_of_work_factory() as uow:
                    outcome = self._reconcile_locked(uow, course_id, pricing)
        except LockUnavailableError as exc:
            outcome = _lock_failure(course_id, exc)

        _log_summary(outcome)
        return outcome

    def _reconcile_locked(
        self,
        uow: ReconciliationUnitOfWork,
        course_id: CourseId,
        pricing: PricingContext | None,
    ) -> ReconcileOutcome:
        runner = StepRunner(uow, course_id=course_id)
        course: Course | _Unavailable | None = runner.read(
            Step.LOAD_COURSE,
            partial(uow.repositories.courses.get, course_id),
            default=_UNAVAILABLE,
        )
        if isinstance(course, _Unavailable):
            return ReconcileOutcome(
                course_id=course_id,
                decision=Decision.ABORTED,
                failures=runner.failures,
            )
        desired = self._desired_pricing(course, pricing)
        if desired is None:
            log.warning("Course %s not found and no pricing supplied; skipping", course_id)
            return ReconcileOutcome(course_id=course_id, decision=Decision.SKIPPED_MISSING_COURSE)

        decision = decide(desired)
        runner.decision = decision
        resolution = self.resolver.resolve(uow, course_id, runner=runner)
        outcome = ReconcileOutcome(
            course_id=course_id,
            decision=decision,
            resolution=resolution,
            failures=runner.failures,
        )

        match decision:
            case Decision.CLEAR_ALL:
                cached = self._clear_all(runner, resolution, outcome)
            case Decision.KEEP_RECURRING:
                self._delete_all(runner, resolution.one_time_ids, outcome)
                cached = list(resolution.recurring_ids)
            case Decision.ENSURE_ONE_TIME:
                cached = self._ensure_one_time(runner, resolution, desired, outcome)
            case _:
                cached = list(resolution.valid_ids)

        repositories = uow.repositories
        runner.run(
            Step.WRITE_CACHE,
            partial(repositories.courses.write_cached_plan_ids, course_id, cached),
        )
        outcome.cached_ids = tuple(cached)
        return outcome

    @staticmethod
    def _desired_pricing(
        course: Course | None,
        pricing: PricingContext | None,
    ) -> PricingContext | None:
        if course is None:
            return pricing
        if pricing is None:
            return course.pricing()
        return pricing.merged_with(course)

    @staticmethod
    def _delete_all(
        runner: StepRunner,
        plan_ids: Iterable[PlanId],
        outcome: ReconcileOutcome,
    ) -> None:
        repositories = runner.uow.repositories
        for plan_id in plan_ids:
            if runner.run(
                Step.FULL_DELETE,
                partial(full_delete, repositories, plan_id),
                plan_id=plan_id,
            ):
                outcome.deleted_ids.append(plan_id)

    def _clear_all(
        self,
        runner: StepRunner,
        resolution: PlanResolution,
        outcome: ReconcileOutcome,
    ) -> list[PlanId]:
        self._delete_all(runner, resolution.valid_ids, outcome)
        runner.run(
            Step.CLEAR_ASSOCIATIONS,
            partial(runner.uow.repositories.associations.delete_by_course, runner.course_id),
        )
        return []

    def _ensure_one_time(
        self,
        runner: StepRunner,
        resolution: PlanResolution,
        pricing: PricingContext,
        outcome: ReconcileOutcome,
    ) -> list[PlanId]:
        course_id = runner.course_id
        repositories = runner.uow.repositories
        terms = one_time_terms(course_id, pricing)
        if terms.initial_amount <= 0:
            log.warning("Course %s is sold one-time without a positive price", course_id)

        self._delete_all(runner, resolution.recurring_ids, outcome)

        if resolution.one_time_ids:
            keep, *extras = resolution.one_time_ids
            self._delete_all(runner, extras, outcome)
            if runner.run(
                Step.UPDATE_PLAN,
                partial(repositories.plans.update, keep, terms),
                plan_id=keep,
            ):
                outcome.updated_id = keep
            runner.run(
                Step.ASSOCIATE,
                partial(repositories.associations.insert, course_id, keep),
                plan_id=keep,
            )
            return [keep]

        if resolution.unverified_ids:
            runner.skip(
                Step.CREATE_PLAN,
                f"plans {list(resolution.unverified_ids)} could not be verified and may be "
                "the existing one-time plan",
            )
            return []

        plan = PricingPlan(terms=terms, owner_course_id=course_id, managed=True)
        created = runner.produce(
            Step.CREATE_PLAN,
            partial(_create_and_link, repositories, course_id, plan),
        )
        if created is None:
            return []
        outcome.created_id = created
        return [created]


def _log_summary(outcome: ReconcileOutcome) -> None:
    if outcome.skipped:
        log.info("Reconcile for course %s skipped: %s", outcome.course_id, outcome.decision)
        return
    resolution = outcome.resolution
    log.info(
        "Reconciled course %s: decision=%s valid=%s deleted=%s created=%s updated=%s "
        "cached=%s failures=%s",
        outcome.course_id,
        outcome.decision,
        resolution.valid_ids if resolution else (),
        outcome.deleted_ids,
        outcome.created_id,
        outcome.updated_id,
        outcome.cached_ids,
        len(outcome.failures),
    )


def _lock_failure(course_id: CourseId, exc: LockUnavailableError) -> ReconcileOutcome:
    cause = exc.__cause__ or exc
    log.error("Reconcile for course %s aborted: %s", course_id, exc, exc_info=cause)
    return ReconcileOutcome(
        course_id=course_id,
        decision=Decision.ABORTED,
        failures=[
            StepFailure(
                step=Step.ACQUIRE_LOCK,
                course_id=course_id,
                error=f"{type(cause).__name__}: {cause}",
            )
        ],
    )
