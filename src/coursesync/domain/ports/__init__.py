"""Domain port definitions for adapters."""

from __future__ import annotations

from .locking import LockLease, ReconcileLock
from .persistence import AssociationStore, CourseRepository, PlanStore
from .unit_of_work import (
    ReconciliationRepositories,
    ReconciliationUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AssociationStore",
    "CourseRepository",
    "LockLease",
    "PlanStore",
    "ReconcileLock",
    "ReconciliationRepositories",
    "ReconciliationUnitOfWork",
    "RepositoryCollection",
    "UnitOfWork",
]
