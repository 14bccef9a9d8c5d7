"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from coursesync.adapters.plan_api import HttpPlanStore
from coursesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyReconciliationUnitOfWork,
    is_started,
    reconcile_lock,
    startup,
)
from coursesync.config import get_plan_api_config, get_reconcile_config, plan_api_enabled
from coursesync.domain.ports.unit_of_work import ReconciliationUnitOfWork
from coursesync.domain.reconciliation import (
    ConcurrencyGuard,
    CoursePlanReader,
    LazyRepair,
    PlanResolver,
    ReconciliationOrchestrator,
)
from coursesync.triggers import TriggerDispatcher

if TYPE_CHECKING:
    from coursesync.config import ReconcileConfig
    from coursesync.domain.model import Course, CourseId, PlanId, PricingContext, PricingPlan
    from coursesync.domain.ports import ReconcileLock
    from coursesync.domain.reconciliation import PlanResolution, ReconcileOutcome

UnitOfWorkFactory = Callable[[], ReconciliationUnitOfWork]


log = getLogger(__name__)


def _ensure_started() -> None:
    if not is_started():
        startup()


def default_unit_of_work_factory() -> UnitOfWorkFactory:
    """Return the SQLAlchemy factory, routing plans to the HTTP API when configured."""

    _ensure_started()
    if not plan_api_enabled():
        return SqlAlchemyReconciliationUnitOfWork

    plan_api = get_plan_api_config()
    log.info(f"Using remote plan store at {plan_api.base_url}")

    def factory() -> ReconciliationUnitOfWork:
        return SqlAlchemyReconciliationUnitOfWork(
            plan_store_factory=lambda _session: HttpPlanStore(config=plan_api)
        )

    return factory


def build_orchestrator(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    lock: ReconcileLock | None = None,
    config: ReconcileConfig | None = None,
) -> ReconciliationOrchestrator:
    effective_config = config or get_reconcile_config()
    effective_uow = unit_of_work_factory or default_unit_of_work_factory()
    if lock is None:
        _ensure_started()
        lock = reconcile_lock()
    return ReconciliationOrchestrator(
        unit_of_work_factory=effective_uow,
        guard=ConcurrencyGuard(lock=lock, ttl=effective_config.lock_ttl),
    )


def reconcile_course(
    course_id: CourseId,
    pricing: PricingContext | None = None,
    *,
    orchestrator: ReconciliationOrchestrator | None = None,
) -> ReconcileOutcome:
    """Run one reconcile for ``course_id`` with the configured adapters."""

    effective = orchestrator or build_orchestrator()
    log.info(f"Starting reconcile for course {course_id}")
    return effective.reconcile(course_id, pricing)


def resolve_course(
    course_id: CourseId,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> PlanResolution:
    """Resolve and cache the verified plan set without changing any plan."""

    effective_uow = unit_of_work_factory or default_unit_of_work_factory()
    with effective_uow() as uow:
        return PlanResolver().resolve(uow, course_id)


def repair_course_plan(
    course_id: CourseId,
    plan_id: PlanId,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[PlanId]:
    """Detach a plan found missing on a display path and return the surviving ids."""

    effective_uow = unit_of_work_factory or default_unit_of_work_factory()
    with effective_uow() as uow:
        return LazyRepair().repair(uow, course_id, plan_id)


def load_course_plans(
    course_id: CourseId,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[PricingPlan]:
    effective_uow = unit_of_work_factory or default_unit_of_work_factory()
    with effective_uow() as uow:
        return CoursePlanReader().load(uow, course_id)


def register_course(
    course: Course,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> None:
    """Insert or update the stored pricing fields of ``course``."""

    effective_uow = unit_of_work_factory or default_unit_of_work_factory()
    with effective_uow() as uow:
        uow.repositories.courses.add(course)
        uow.commit()
    log.info(
        f"Stored course {course.id}: pricing_type={course.pricing_type}, "
        f"selling_option={course.selling_option}, price={course.price}"
    )


def build_trigger_dispatcher(
    *,
    orchestrator: ReconciliationOrchestrator | None = None,
    config: ReconcileConfig | None = None,
) -> TriggerDispatcher:
    """Return a dispatcher for save hooks, reusing one orchestrator for every run."""

    effective_config = config or get_reconcile_config()
    effective = orchestrator or build_orchestrator(config=effective_config)
    return TriggerDispatcher(
        reconcile=effective.reconcile,
        followup_delay=effective_config.followup_delay_seconds,
    )
