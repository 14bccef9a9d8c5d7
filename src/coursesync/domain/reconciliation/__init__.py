"""Reconciliation engine keeping course pricing and plan records consistent.

Layered flow of one reconcile run:
1) acquire the per-course lock (skip when held)
2) resolve the verified plan set from associations, cache and owner tags
3) pick the branch for the desired pricing configuration
4) delete/create/update plans as independent best-effort steps
5) rewrite the course cache and release the lock

Display paths use ``CoursePlanReader`` and ``LazyRepair`` instead, which only
ever remove stale links.
"""

from __future__ import annotations

from .cleanup import full_delete, unmap
from .contracts import (
    Decision,
    PlanResolution,
    ReconcileOutcome,
    Step,
    StepFailure,
)
from .guard import DEFAULT_LOCK_TTL, ConcurrencyGuard, LockUnavailableError
from .orchestrator import ReconciliationOrchestrator, decide
from .read import CoursePlanReader
from .repair import LazyRepair
from .resolve import PlanResolver
from .steps import StepRunner

__all__ = [
    "DEFAULT_LOCK_TTL",
    "ConcurrencyGuard",
    "CoursePlanReader",
    "Decision",
    "LazyRepair",
    "LockUnavailableError",
    "PlanResolution",
    "PlanResolver",
    "ReconcileOutcome",
    "ReconciliationOrchestrator",
    "Step",
    "StepFailure",
    "StepRunner",
    "decide",
    "full_delete",
    "unmap",
]
