"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from coursesync.adapters.sqlalchemy.mappings import (
    course_plan_table,
    course_table,
    plan_category_table,
    plan_meta_table,
    pricing_plan_table,
    reconcile_lock_table,
)
from coursesync.domain.model import (
    MANAGED_META_KEY,
    OWNER_META_KEY,
    Course,
    PlanTerms,
    PricingPlan,
)
from coursesync.domain.ports import LockLease

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import timedelta

    from sqlalchemy import Row
    from sqlalchemy.engine import Engine
    from sqlalchemy.orm import Session

    from coursesync.domain.model import CourseId, PlanId

log = logging.getLogger(__name__)


def _terms_values(terms: PlanTerms) -> dict[str, Any]:
    return {
        "name": terms.name,
        "initial_amount": terms.initial_amount,
        "billing_amount": terms.billing_amount,
        "cycle_number": terms.cycle_number,
        "cycle_period": terms.cycle_period,
        "billing_limit": terms.billing_limit,
    }


def _parse_owner(value: str | None) -> int | None:
    if value is None or not value.strip().isdigit():
        return None
    return int(value)


class SqlAlchemyPlanStore:
    """Plan store living in the same database as the courses.

    The owner tag and the managed marker are kept as plan metadata rows, so
    deleting a plan's metadata also drops its reverse-ownership tag.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, plan_id: PlanId) -> PricingPlan | None:
        stmt = select(pricing_plan_table).where(pricing_plan_table.c.id == plan_id)
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        meta = self._meta(plan_id)
        return PricingPlan(
            id=row.id,
            terms=PlanTerms(
                name=row.name,
                initial_amount=row.initial_amount,
                billing_amount=row.billing_amount,
                cycle_number=row.cycle_number,
                cycle_period=row.cycle_period,
                billing_limit=row.billing_limit,
            ),
            owner_course_id=_parse_owner(meta.get(OWNER_META_KEY)),
            managed=meta.get(MANAGED_META_KEY) == "1",
            created_at=row.created_at,
        )

    def exists(self, plan_id: PlanId) -> bool:
        stmt = select(pricing_plan_table.c.id).where(pricing_plan_table.c.id == plan_id)
        return self.session.execute(stmt).scalar_one_or_none() is not None

    def create(self, plan: PricingPlan) -> PlanId:
        values = _terms_values(plan.terms)
        if plan.created_at is not None:
            values["created_at"] = plan.created_at
        result = self.session.execute(insert(pricing_plan_table).values(**values))
        primary_key = result.inserted_primary_key
        if primary_key is None:
            raise RuntimeError("Plan insert did not return a primary key")
        plan_id = int(primary_key[0])
        if plan.owner_course_id is not None:
            self._set_meta(plan_id, OWNER_META_KEY, str(plan.owner_course_id))
        if plan.managed:
            self._set_meta(plan_id, MANAGED_META_KEY, "1")
        log.debug("Inserted plan %s (%s)", plan_id, plan.terms.name)
        return plan_id

    def update(self, plan_id: PlanId, terms: PlanTerms) -> None:
        stmt = (
            update(pricing_plan_table)
            .where(pricing_plan_table.c.id == plan_id)
            .values(**_terms_values(terms))
        )
        self.session.execute(stmt)

    def delete(self, plan_id: PlanId) -> None:
        self.session.execute(delete(pricing_plan_table).where(pricing_plan_table.c.id == plan_id))

    def find_by_owner(self, course_id: CourseId) -> list[PlanId]:
        stmt = (
            select(plan_meta_table.c.plan_id)
            .where(plan_meta_table.c.meta_key == OWNER_META_KEY)
            .where(plan_meta_table.c.meta_value == str(course_id))
            .order_by(plan_meta_table.c.plan_id)
        )
        return [int(plan_id) for plan_id in self.session.execute(stmt).scalars()]

    def delete_metadata(self, plan_id: PlanId) -> None:
        self.session.execute(delete(plan_meta_table).where(plan_meta_table.c.plan_id == plan_id))

    def delete_category_relations(self, plan_id: PlanId) -> None:
        self.session.execute(
            delete(plan_category_table).where(plan_category_table.c.plan_id == plan_id)
        )

    def _meta(self, plan_id: PlanId) -> dict[str, str | None]:
        stmt = select(plan_meta_table.c.meta_key, plan_meta_table.c.meta_value).where(
            plan_meta_table.c.plan_id == plan_id
        )
        return {row.meta_key: row.meta_value for row in self.session.execute(stmt)}

    def _set_meta(self, plan_id: PlanId, key: str, value: str) -> None:
        self.session.execute(
            insert(plan_meta_table).values(plan_id=plan_id, meta_key=key, meta_value=value)
        )


class SqlAlchemyAssociationStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def insert(self, course_id: CourseId, plan_id: PlanId) -> None:
        if self._exists(course_id, plan_id):
            return
        self.session.execute(
            insert(course_plan_table).values(course_id=course_id, plan_id=plan_id)
        )

    def delete(self, course_id: CourseId, plan_id: PlanId) -> None:
        self.session.execute(
            delete(course_plan_table)
            .where(course_plan_table.c.course_id == course_id)
            .where(course_plan_table.c.plan_id == plan_id)
        )

    def delete_by_course(self, course_id: CourseId) -> None:
        self.session.execute(
            delete(course_plan_table).where(course_plan_table.c.course_id == course_id)
        )

    def delete_by_plan(self, plan_id: PlanId) -> None:
        self.session.execute(
            delete(course_plan_table).where(course_plan_table.c.plan_id == plan_id)
        )

    def list_by_course(self, course_id: CourseId) -> list[PlanId]:
        stmt = (
            select(course_plan_table.c.plan_id)
            .where(course_plan_table.c.course_id == course_id)
            .order_by(course_plan_table.c.plan_id)
        )
        return [int(plan_id) for plan_id in self.session.execute(stmt).scalars()]

    def _exists(self, course_id: CourseId, plan_id: PlanId) -> bool:
        stmt = (
            select(course_plan_table.c.plan_id)
            .where(course_plan_table.c.course_id == course_id)
            .where(course_plan_table.c.plan_id == plan_id)
        )
        return self.session.execute(stmt).scalar_one_or_none() is not None


class SqlAlchemyCourseRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, course: Course) -> None:
        values = {
            "title": course.title,
            "pricing_type": course.pricing_type,
            "selling_option": course.selling_option,
            "price": course.price,
        }
        if self.get(course.id) is None:
            self.session.execute(
                insert(course_table).values(
                    id=course.id,
                    cached_plan_ids=list(course.cached_plan_ids),
                    **values,
                )
            )
            return
        self.session.execute(
            update(course_table).where(course_table.c.id == course.id).values(**values)
        )

    def get(self, course_id: CourseId) -> Course | None:
        stmt = select(course_table).where(course_table.c.id == course_id)
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return self._to_course(row)

    def cached_plan_ids(self, course_id: CourseId) -> list[PlanId]:
        stmt = select(course_table.c.cached_plan_ids).where(course_table.c.id == course_id)
        cached = self.session.execute(stmt).scalar_one_or_none()
        return list(cached or [])

    def write_cached_plan_ids(self, course_id: CourseId, plan_ids: Sequence[PlanId]) -> None:
        stmt = (
            update(course_table)
            .where(course_table.c.id == course_id)
            .values(cached_plan_ids=list(plan_ids) or None)
        )
        self.session.execute(stmt)

    def courses_caching(self, plan_id: PlanId) -> list[CourseId]:
        stmt = (
            select(course_table.c.id, course_table.c.cached_plan_ids)
            .where(course_table.c.cached_plan_ids.is_not(None))
            .order_by(course_table.c.id)
        )
        return [
            int(row.id)
            for row in self.session.execute(stmt)
            if plan_id in (row.cached_plan_ids or [])
        ]

    @staticmethod
    def _to_course(row: Row[Any]) -> Course:
        return Course(
            id=row.id,
            title=row.title,
            pricing_type=row.pricing_type,
            selling_option=row.selling_option,
            price=row.price,
            cached_plan_ids=list(row.cached_plan_ids or []),
        )


class SqlAlchemyReconcileLock:
    """Lease rows with an expiry, written on their own connection.

    Each acquire and release commits immediately so that other processes see
    the lease regardless of what the caller's session is doing.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def acquire(self, course_id: CourseId, *, ttl: timedelta) -> LockLease | None:
        now = datetime.now(tz=UTC)
        lease = LockLease(course_id=course_id, token=secrets.token_hex(16), expires_at=now + ttl)
        try:
            with self.engine.begin() as connection:
                connection.execute(
                    delete(reconcile_lock_table)
                    .where(reconcile_lock_table.c.course_id == course_id)
                    .where(reconcile_lock_table.c.expires_at <= now)
                )
                connection.execute(
                    insert(reconcile_lock_table).values(
                        course_id=course_id,
                        token=lease.token,
                        expires_at=lease.expires_at,
                    )
                )
        except IntegrityError:
            log.debug("Lock for course %s is held elsewhere", course_id)
            return None
        return lease

    def release(self, lease: LockLease) -> None:
        with self.engine.begin() as connection:
            connection.execute(
                delete(reconcile_lock_table)
                .where(reconcile_lock_table.c.course_id == lease.course_id)
                .where(reconcile_lock_table.c.token == lease.token)
            )
