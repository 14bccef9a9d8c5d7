"""Initial schema for courses, plans, links, and reconcile leases.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from coursesync.adapters.sqlalchemy.mappings import PlanIdListType, UTCDateTime

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "course",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column(
            "pricing_type",
            sa.Enum("FREE", "PAID", name="pricingtype", native_enum=False),
            nullable=False,
        ),
        sa.Column(
            "selling_option",
            sa.Enum(
                "ONE_TIME",
                "SUBSCRIPTION",
                "BOTH",
                "MEMBERSHIP",
                "ALL",
                name="sellingoption",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("cached_plan_ids", PlanIdListType(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_course")),
    )
    op.create_table(
        "pricing_plan",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("initial_amount", sa.Float(), nullable=False),
        sa.Column("billing_amount", sa.Float(), nullable=False),
        sa.Column("cycle_number", sa.Integer(), nullable=False),
        sa.Column(
            "cycle_period",
            sa.Enum("DAY", "WEEK", "MONTH", "YEAR", name="cycleperiod", native_enum=False),
            nullable=True,
        ),
        sa.Column("billing_limit", sa.Integer(), nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_pricing_plan")),
    )
    op.create_table(
        "plan_meta",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=False),
        sa.Column("meta_key", sa.String(), nullable=False),
        sa.Column("meta_value", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_plan_meta")),
        sa.UniqueConstraint("plan_id", "meta_key", name=op.f("uq_plan_meta_plan_id")),
    )
    op.create_index(
        op.f("ix_plan_meta_meta_key"),
        "plan_meta",
        ["meta_key", "meta_value"],
        unique=False,
    )
    op.create_table(
        "plan_category",
        sa.Column("plan_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("plan_id", "category_id", name=op.f("pk_plan_category")),
    )
    op.create_table(
        "course_plan",
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("course_id", "plan_id", name=op.f("pk_course_plan")),
    )
    op.create_index(op.f("ix_course_plan_plan_id"), "course_plan", ["plan_id"], unique=False)
    op.create_table(
        "reconcile_lock",
        sa.Column("course_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("expires_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("course_id", name=op.f("pk_reconcile_lock")),
    )


def downgrade() -> None:
    op.drop_table("reconcile_lock")
    op.drop_index(op.f("ix_course_plan_plan_id"), table_name="course_plan")
    op.drop_table("course_plan")
    op.drop_table("plan_category")
    op.drop_index(op.f("ix_plan_meta_meta_key"), table_name="plan_meta")
    op.drop_table("plan_meta")
    op.drop_table("pricing_plan")
    op.drop_table("course")
