"""End-to-end reconcile behaviour against the in-memory stores."""

from __future__ import annotations

import threading

import pytest

from coursesync.domain.model import PricingContext, PricingType, SellingOption
from coursesync.domain.reconciliation import (
    ConcurrencyGuard,
    CoursePlanReader,
    Decision,
    PlanResolver,
    ReconciliationOrchestrator,
)
from tests.helpers.reconciliation import (
    FakeReconcileLock,
    FakeStores,
    FakeUnitOfWork,
    one_time_terms,
    recurring_terms,
)


def _pricing(pricing_type: PricingType, selling_option: SellingOption) -> PricingContext:
    return PricingContext(
        pricing_type=pricing_type,
        selling_option=selling_option,
        price=25.0,
        title="Course",
    )


@pytest.mark.parametrize(
    ("pricing_type", "selling_option"),
    [
        (PricingType.FREE, SellingOption.ONE_TIME),
        (PricingType.PAID, SellingOption.ONE_TIME),
        (PricingType.PAID, SellingOption.SUBSCRIPTION),
        (PricingType.PAID, SellingOption.BOTH),
    ],
)
def test_reconcile_is_idempotent(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
    pricing_type: PricingType,
    selling_option: SellingOption,
) -> None:
    stores.link(
        1,
        stores.plans.seed(one_time_terms()),
        stores.plans.seed(recurring_terms()),
    )
    pricing = _pricing(pricing_type, selling_option)

    orchestrator.reconcile(1, pricing)
    first = PlanResolver().resolve(FakeUnitOfWork(stores), 1)
    second_outcome = orchestrator.reconcile(1, pricing)
    second = PlanResolver().resolve(FakeUnitOfWork(stores), 1)

    assert (first.valid_ids, first.one_time_ids, first.recurring_ids) == (
        second.valid_ids,
        second.one_time_ids,
        second.recurring_ids,
    )
    assert second_outcome.deleted_ids == []
    assert second_outcome.created_id is None


def test_paid_one_time_course_without_plans_gets_exactly_one(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    outcome = orchestrator.reconcile(1, _pricing(PricingType.PAID, SellingOption.ONE_TIME))

    assert outcome.created_id is not None
    assert list(stores.plans.records) == [outcome.created_id]
    plan = stores.plans.get(outcome.created_id)
    assert plan is not None
    assert plan.managed
    assert plan.owner_course_id == 1
    assert stores.associations.rows == {(1, outcome.created_id)}
    assert stores.courses.caches[1] == [outcome.created_id]

    resolution = PlanResolver().resolve(FakeUnitOfWork(stores), 1)
    assert len(resolution.one_time_ids) == 1
    assert resolution.recurring_ids == ()


def test_switch_to_subscription_deletes_one_time_plan_globally(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    one_time = stores.plans.seed(one_time_terms())
    recurring = stores.plans.seed(recurring_terms())
    stores.link(1, one_time, recurring)
    stores.link(2, one_time)

    outcome = orchestrator.reconcile(1, _pricing(PricingType.PAID, SellingOption.SUBSCRIPTION))

    assert outcome.cached_ids == (recurring,)
    assert one_time not in stores.plans.records
    assert stores.associations.list_by_course(2) == []
    assert stores.courses.caches[1] == [recurring]


def test_dangling_cached_id_is_repaired_on_read(stores: FakeStores) -> None:
    live = stores.plans.seed(recurring_terms())
    stores.link(1, live, 42)
    stores.cache(1, 42, live)

    plans = CoursePlanReader().load(FakeUnitOfWork(stores), 1)

    assert [plan.id for plan in plans] == [live]
    assert stores.courses.caches[1] == [live]
    assert stores.associations.list_by_course(1) == [live]


def test_free_course_ends_with_no_valid_plans(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    stores.plans.seed(recurring_terms(), owner_course_id=1)
    stores.cache(1, stores.plans.seed(one_time_terms()))

    orchestrator.reconcile(1, _pricing(PricingType.FREE, SellingOption.ALL))

    assert PlanResolver().resolve(FakeUnitOfWork(stores), 1).valid_ids == ()


def test_concurrent_runs_execute_once(stores: FakeStores) -> None:
    lock = FakeReconcileLock()
    entered = threading.Event()
    release = threading.Event()
    base_factory = stores.unit_of_work_factory()

    def blocking_factory() -> FakeUnitOfWork:
        entered.set()
        release.wait(timeout=5)
        return base_factory()

    slow = ReconciliationOrchestrator(
        unit_of_work_factory=blocking_factory,
        guard=ConcurrencyGuard(lock=lock),
    )
    fast = ReconciliationOrchestrator(
        unit_of_work_factory=base_factory,
        guard=ConcurrencyGuard(lock=lock),
    )
    pricing = _pricing(PricingType.PAID, SellingOption.ONE_TIME)
    results: list[Decision] = []

    worker = threading.Thread(target=lambda: results.append(slow.reconcile(1, pricing).decision))
    worker.start()
    assert entered.wait(timeout=5)

    skipped = fast.reconcile(1, pricing)
    release.set()
    worker.join(timeout=5)

    assert skipped.decision is Decision.SKIPPED_LOCKED
    assert results == [Decision.ENSURE_ONE_TIME]
    assert len(stores.plans.records) == 1
