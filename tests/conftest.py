from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from coursesync.adapters.sqlalchemy.migrations import upgrade_head
from coursesync.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyReconciliationUnitOfWork,
    shutdown,
    startup,
)
from coursesync.domain.reconciliation import ConcurrencyGuard, ReconciliationOrchestrator
from tests.helpers.reconciliation import FakeReconcileLock, FakeStores

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def stores() -> FakeStores:
    return FakeStores()


@pytest.fixture
def fake_lock() -> FakeReconcileLock:
    return FakeReconcileLock()


@pytest.fixture
def orchestrator(stores: FakeStores, fake_lock: FakeReconcileLock) -> ReconciliationOrchestrator:
    return ReconciliationOrchestrator(
        unit_of_work_factory=stores.unit_of_work_factory(),
        guard=ConcurrencyGuard(lock=fake_lock),
    )


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'coursesync.db'}", future=True)
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyReconciliationUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyReconciliationUnitOfWork:
        return SqlAlchemyReconciliationUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
