from __future__ import annotations

from coursesync.domain.reconciliation import PlanResolver, Step, StepRunner
from coursesync.domain.reconciliation.resolve import merge_candidates
from tests.helpers.reconciliation import (
    FakeStores,
    FakeUnitOfWork,
    one_time_terms,
    recurring_terms,
)


def test_merge_candidates_keeps_first_seen_order_and_drops_invalid_ids() -> None:
    assert merge_candidates([3, 1], [1, 0, 2], [-4, 3, 5]) == [3, 1, 2, 5]


def test_resolver_unions_all_sources(stores: FakeStores) -> None:
    linked = stores.plans.seed(one_time_terms())
    cached = stores.plans.seed(recurring_terms())
    tagged = stores.plans.seed(recurring_terms("Yearly"), owner_course_id=10)
    stores.link(10, linked)
    stores.cache(10, cached)

    resolution = PlanResolver().resolve(FakeUnitOfWork(stores), 10)

    assert resolution.valid_ids == (linked, cached, tagged)
    assert resolution.one_time_ids == (linked,)
    assert resolution.recurring_ids == (cached, tagged)
    assert stores.courses.caches[10] == [linked, cached, tagged]


def test_resolver_includes_hinted_ids(stores: FakeStores) -> None:
    hinted = stores.plans.seed(one_time_terms())

    resolution = PlanResolver().resolve(FakeUnitOfWork(stores), 10, hinted_ids=[hinted])

    assert resolution.valid_ids == (hinted,)


def test_resolver_heals_dangling_cache_entry(stores: FakeStores) -> None:
    kept = stores.plans.seed(one_time_terms())
    stores.link(10, kept, 42)
    stores.cache(10, kept, 42)

    resolution = PlanResolver().resolve(FakeUnitOfWork(stores), 10)

    assert resolution.valid_ids == (kept,)
    assert resolution.pruned_ids == (42,)
    assert stores.associations.list_by_course(10) == [kept]
    assert stores.courses.caches[10] == [kept]


def test_resolver_leaves_unverifiable_ids_in_place(stores: FakeStores) -> None:
    flaky = stores.plans.seed(recurring_terms())
    stores.link(10, flaky)
    stores.plans.fail("get", flaky)
    uow = FakeUnitOfWork(stores)

    resolution = PlanResolver().resolve(uow, 10)

    assert resolution.valid_ids == ()
    assert resolution.unverified_ids == (flaky,)
    assert resolution.pruned_ids == ()
    assert stores.associations.list_by_course(10) == [flaky]


def test_resolver_continues_when_a_source_fails(stores: FakeStores) -> None:
    cached = stores.plans.seed(one_time_terms())
    stores.cache(10, cached)
    stores.associations.fail("list_by_course")

    resolution = PlanResolver().resolve(FakeUnitOfWork(stores), 10)

    assert resolution.valid_ids == (cached,)
    assert stores.rollbacks == 1


def test_resolver_clears_cache_when_nothing_is_valid(stores: FakeStores) -> None:
    stores.cache(10, 42)

    resolution = PlanResolver().resolve(FakeUnitOfWork(stores), 10)

    assert resolution.valid_ids == ()
    assert 10 not in stores.courses.caches


def test_resolver_records_failed_cache_write(stores: FakeStores) -> None:
    plan_id = stores.plans.seed(one_time_terms())
    stores.link(10, plan_id)
    stores.courses.fail("write_cached_plan_ids")
    uow = FakeUnitOfWork(stores)
    runner = StepRunner(uow, course_id=10)

    resolution = PlanResolver().resolve(uow, 10, runner=runner)

    assert resolution.valid_ids == (plan_id,)
    assert [failure.step for failure in runner.failures] == [Step.WRITE_CACHE]
