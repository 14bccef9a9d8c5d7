"""SQLAlchemy adapter package for coursesync."""

from __future__ import annotations

from .mappings import create_all_tables, metadata
from .repositories import (
    SqlAlchemyAssociationStore,
    SqlAlchemyCourseRepository,
    SqlAlchemyPlanStore,
    SqlAlchemyReconcileLock,
)
from .unit_of_work import (
    SqlAlchemyReconciliationUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    reconcile_lock,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAssociationStore",
    "SqlAlchemyCourseRepository",
    "SqlAlchemyPlanStore",
    "SqlAlchemyReconcileLock",
    "SqlAlchemyReconciliationUnitOfWork",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "metadata",
    "reconcile_lock",
    "shutdown",
    "startup",
]
