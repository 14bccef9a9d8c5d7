from __future__ import annotations

import logging

import pytest

from coursesync.domain.model import (
    Course,
    PricingContext,
    PricingType,
    SellingOption,
)
from coursesync.domain.reconciliation import (
    Decision,
    ReconciliationOrchestrator,
    Step,
    decide,
)
from tests.helpers.reconciliation import (
    FakeReconcileLock,
    FakeStores,
    one_time_terms,
    recurring_terms,
)

PAID_ONE_TIME = PricingContext(
    pricing_type=PricingType.PAID,
    selling_option=SellingOption.ONE_TIME,
    price=49.0,
    title="Intro",
)
SUBSCRIPTION = PricingContext(
    pricing_type=PricingType.PAID,
    selling_option=SellingOption.SUBSCRIPTION,
)
FREE = PricingContext(pricing_type=PricingType.FREE, selling_option=SellingOption.ONE_TIME)


@pytest.mark.parametrize(
    ("pricing_type", "selling_option", "expected"),
    [
        (PricingType.FREE, SellingOption.SUBSCRIPTION, Decision.CLEAR_ALL),
        (PricingType.PAID, SellingOption.SUBSCRIPTION, Decision.KEEP_RECURRING),
        (PricingType.PAID, SellingOption.ONE_TIME, Decision.ENSURE_ONE_TIME),
        (PricingType.PAID, SellingOption.BOTH, Decision.KEEP_ALL),
        (PricingType.PAID, SellingOption.MEMBERSHIP, Decision.KEEP_ALL),
        (PricingType.PAID, SellingOption.ALL, Decision.KEEP_ALL),
    ],
)
def test_decide(
    pricing_type: PricingType,
    selling_option: SellingOption,
    expected: Decision,
) -> None:
    pricing = PricingContext(pricing_type=pricing_type, selling_option=selling_option)

    assert decide(pricing) is expected


def test_free_course_clears_every_plan(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    one_time = stores.plans.seed(one_time_terms())
    recurring = stores.plans.seed(recurring_terms(), owner_course_id=1)
    stores.link(1, one_time)
    stores.cache(1, one_time, recurring)

    outcome = orchestrator.reconcile(1, FREE)

    assert outcome.decision is Decision.CLEAR_ALL
    assert sorted(outcome.deleted_ids) == [one_time, recurring]
    assert outcome.cached_ids == ()
    assert stores.plans.records == {}
    assert stores.associations.rows == set()
    assert 1 not in stores.courses.caches


def test_one_time_course_creates_managed_plan(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    outcome = orchestrator.reconcile(1, PAID_ONE_TIME)

    created = outcome.created_id
    assert created is not None
    plan = stores.plans.get(created)
    assert plan is not None
    assert plan.managed
    assert plan.owner_course_id == 1
    assert plan.terms.name == "Intro (One-time)"
    assert plan.terms.initial_amount == 49.0
    assert not plan.is_recurring
    assert stores.associations.rows == {(1, created)}
    assert stores.courses.caches[1] == [created]


def test_one_time_course_updates_existing_plan_and_drops_others(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    first = stores.plans.seed(one_time_terms("Old name", 10.0))
    extra = stores.plans.seed(one_time_terms("Duplicate", 10.0))
    recurring = stores.plans.seed(recurring_terms())
    stores.link(1, first, extra, recurring)

    outcome = orchestrator.reconcile(1, PAID_ONE_TIME)

    assert outcome.updated_id == first
    assert outcome.created_id is None
    assert sorted(outcome.deleted_ids) == [extra, recurring]
    updated = stores.plans.get(first)
    assert updated is not None
    assert updated.terms.name == "Intro (One-time)"
    assert updated.terms.initial_amount == 49.0
    assert stores.associations.rows == {(1, first)}
    assert stores.courses.caches[1] == [first]


def test_one_time_without_price_still_ensures_a_plan(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
    caplog: pytest.LogCaptureFixture,
) -> None:
    pricing = PricingContext(pricing_type=PricingType.PAID, selling_option=SellingOption.ONE_TIME)

    with caplog.at_level(logging.WARNING):
        outcome = orchestrator.reconcile(3, pricing)

    assert outcome.created_id is not None
    plan = stores.plans.get(outcome.created_id)
    assert plan is not None
    assert plan.terms.name == "One-time Plan for 3"
    assert plan.terms.initial_amount == 0.0
    assert "without a positive price" in caplog.text


def test_subscription_course_keeps_only_recurring(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    one_time = stores.plans.seed(one_time_terms())
    recurring = stores.plans.seed(recurring_terms())
    stores.link(1, one_time, recurring)

    outcome = orchestrator.reconcile(1, SUBSCRIPTION)

    assert outcome.decision is Decision.KEEP_RECURRING
    assert outcome.deleted_ids == [one_time]
    assert outcome.cached_ids == (recurring,)
    assert set(stores.plans.records) == {recurring}


def test_mixed_selling_keeps_everything(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    one_time = stores.plans.seed(one_time_terms())
    recurring = stores.plans.seed(recurring_terms())
    stores.link(1, one_time, recurring)
    pricing = PricingContext(pricing_type=PricingType.PAID, selling_option=SellingOption.BOTH)

    outcome = orchestrator.reconcile(1, pricing)

    assert outcome.decision is Decision.KEEP_ALL
    assert outcome.deleted_ids == []
    assert outcome.cached_ids == (one_time, recurring)
    assert stores.plans.mutation_count() == 0


def test_stored_course_supplies_pricing(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    stores.courses.add(
        Course(
            id=4,
            title="Stored",
            pricing_type=PricingType.PAID,
            selling_option=SellingOption.ONE_TIME,
            price=15.0,
        )
    )

    outcome = orchestrator.reconcile(4)

    assert outcome.created_id is not None
    plan = stores.plans.get(outcome.created_id)
    assert plan is not None
    assert plan.terms.name == "Stored (One-time)"
    assert plan.terms.initial_amount == 15.0


def test_missing_course_without_pricing_is_skipped(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    outcome = orchestrator.reconcile(404)

    assert outcome.decision is Decision.SKIPPED_MISSING_COURSE
    assert outcome.skipped
    assert stores.plans.calls == []


def test_held_lock_skips_without_touching_stores(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    stores.plans.seed(one_time_terms(), owner_course_id=1)

    with orchestrator.guard.hold(1):
        outcome = orchestrator.reconcile(1, FREE)

    assert outcome.decision is Decision.SKIPPED_LOCKED
    assert stores.plans.mutation_count() == 0
    assert len(stores.plans.records) == 1


def test_failed_delete_does_not_stop_the_run(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    stuck = stores.plans.seed(recurring_terms("Stuck"))
    removable = stores.plans.seed(recurring_terms("Removable"))
    stores.link(1, stuck, removable)
    stores.plans.fail("delete", stuck)

    outcome = orchestrator.reconcile(1, FREE)

    assert outcome.deleted_ids == [removable]
    assert [(failure.step, failure.plan_id) for failure in outcome.failures] == [
        (Step.FULL_DELETE, stuck)
    ]
    failure = outcome.failures[0]
    assert failure.course_id == 1
    assert failure.decision is Decision.CLEAR_ALL
    assert "StoreUnavailableError" in failure.error
    assert removable not in stores.plans.records
    assert not outcome.succeeded


def test_failed_create_leaves_cache_empty(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    stores.plans.fail("create")

    outcome = orchestrator.reconcile(1, PAID_ONE_TIME)

    assert outcome.created_id is None
    assert outcome.cached_ids == ()
    assert [failure.step for failure in outcome.failures] == [Step.CREATE_PLAN]

    stores.plans.heal()
    retried = orchestrator.reconcile(1, PAID_ONE_TIME)

    assert retried.created_id is not None
    assert retried.succeeded


def test_unverifiable_one_time_plan_is_not_duplicated(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
) -> None:
    existing = stores.plans.seed(one_time_terms(), owner_course_id=1)
    stores.link(1, existing)
    stores.cache(1, existing)
    stores.plans.fail("get", existing)

    outcome = orchestrator.reconcile(1, PAID_ONE_TIME)

    assert outcome.created_id is None
    assert outcome.resolution is not None
    assert outcome.resolution.unverified_ids == (existing,)
    steps = [(failure.step, failure.error.startswith("skipped")) for failure in outcome.failures]
    assert steps == [(Step.VERIFY, False), (Step.CREATE_PLAN, True)]
    assert list(stores.plans.records) == [existing]
    assert stores.associations.rows == {(1, existing)}

    stores.plans.heal()
    retried = orchestrator.reconcile(1, PAID_ONE_TIME)

    assert retried.created_id is None
    assert retried.updated_id == existing
    assert retried.cached_ids == (existing,)
    assert list(stores.plans.records) == [existing]


def test_unreachable_lock_store_aborts_the_run(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
    fake_lock: FakeReconcileLock,
) -> None:
    stores.plans.seed(one_time_terms(), owner_course_id=1)
    fake_lock.fail_acquire = True

    outcome = orchestrator.reconcile(1, FREE)

    assert outcome.decision is Decision.ABORTED
    assert outcome.skipped
    assert [failure.step for failure in outcome.failures] == [Step.ACQUIRE_LOCK]
    assert "StoreUnavailableError" in outcome.failures[0].error
    assert stores.plans.mutation_count() == 0


def test_unreadable_course_aborts_the_run(
    orchestrator: ReconciliationOrchestrator,
    stores: FakeStores,
    fake_lock: FakeReconcileLock,
) -> None:
    stores.courses.add(Course(id=1, pricing_type=PricingType.FREE))
    stores.plans.seed(recurring_terms(), owner_course_id=1)
    stores.courses.fail("get", 1)

    outcome = orchestrator.reconcile(1, PAID_ONE_TIME)

    assert outcome.decision is Decision.ABORTED
    assert [failure.step for failure in outcome.failures] == [Step.LOAD_COURSE]
    assert stores.plans.mutation_count() == 0
    assert stores.rollbacks == 1
    assert fake_lock.released == [1]
