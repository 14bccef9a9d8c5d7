"""SQLAlchemy table metadata for courses, plans and their links.

Plan rows belong to an external system and can change under us at any time,
so repositories work on Core tables and translate rows into fresh domain
objects on every read instead of keeping mapped instances in an identity map.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
)

from coursesync.domain.model import CyclePeriod, PricingType, SellingOption

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class PlanIdListType(TypeDecorator[list[int]]):
    """JSON-encoded list of plan ids, as kept in the course cache field."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: list[int] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if not value:
            return None
        return json.dumps([int(plan_id) for plan_id in value])

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[int]:
        _ = dialect
        if value is None:
            return []
        try:
            loaded = json.loads(value)
        except json.JSONDecodeError:
            log.warning("Discarding unreadable plan id cache: %r", value)
            return []
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        plan_ids: list[int] = []
        for item in items:
            if isinstance(item, int | str) and str(item).strip().isdigit():
                plan_ids.append(int(item))
        return plan_ids


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

course_table = Table(
    "course",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("title", String, nullable=False, default=""),
    Column("pricing_type", Enum(PricingType, native_enum=False), nullable=False),
    Column("selling_option", Enum(SellingOption, native_enum=False), nullable=False),
    Column("price", Float, nullable=True),
    Column("cached_plan_ids", PlanIdListType, nullable=True),
)

# Plan store tables -----------------------------------------------------------

pricing_plan_table = Table(
    "pricing_plan",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("initial_amount", Float, nullable=False, default=0.0),
    Column("billing_amount", Float, nullable=False, default=0.0),
    Column("cycle_number", Integer, nullable=False, default=0),
    Column("cycle_period", Enum(CyclePeriod, native_enum=False), nullable=True),
    Column("billing_limit", Integer, nullable=False, default=0),
    Column("created_at", UTCDateTime, nullable=False, default=lambda: datetime.now(tz=UTC)),
)

plan_meta_table = Table(
    "plan_meta",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("plan_id", Integer, nullable=False),
    Column("meta_key", String, nullable=False),
    Column("meta_value", String, nullable=True),
    UniqueConstraint("plan_id", "meta_key"),
    Index(None, "meta_key", "meta_value"),
)

plan_category_table = Table(
    "plan_category",
    metadata,
    Column("plan_id", Integer, nullable=False),
    Column("category_id", Integer, nullable=False),
    PrimaryKeyConstraint("plan_id", "category_id"),
)

# Links and coordination ------------------------------------------------------

course_plan_table = Table(
    "course_plan",
    metadata,
    Column("course_id", Integer, nullable=False),
    Column("plan_id", Integer, nullable=False),
    PrimaryKeyConstraint("course_id", "plan_id"),
    Index(None, "plan_id"),
)

reconcile_lock_table = Table(
    "reconcile_lock",
    metadata,
    Column("course_id", Integer, primary_key=True, autoincrement=False),
    Column("token", String(64), nullable=False),
    Column("expires_at", UTCDateTime, nullable=False),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the table metadata."""

    log.info("Creating all tables")
    metadata.create_all(engine)
