"""SQLAlchemy-backed units of work for reconcile runs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any, Literal, Protocol, Self, runtime_checkable

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from coursesync.adapters.sqlalchemy.migrations import upgrade_head
from coursesync.adapters.sqlalchemy.repositories import (
    SqlAlchemyAssociationStore,
    SqlAlchemyCourseRepository,
    SqlAlchemyPlanStore,
    SqlAlchemyReconcileLock,
)
from coursesync.config.storage import DatabaseConfig, get_database_config
from coursesync.domain.ports import (
    PlanStore,
    ReconciliationRepositories,
    RepositoryCollection,
)

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

type PlanStoreFactory = Callable[[Session], PlanStore]


@runtime_checkable
class _Closable(Protocol):
    def close(self) -> None: ...


log = getLogger(__name__)

# Seconds a SQLite connection waits for another writer, such as a lease write
# racing a reconcile step.
SQLITE_BUSY_TIMEOUT = 15


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy adapter is used before startup() or started twice."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None
    session_factory: sessionmaker[Session] | None = None
    lock: SqlAlchemyReconcileLock | None = None

    def require_started(self) -> tuple[sessionmaker[Session], SqlAlchemyReconcileLock]:
        if self.session_factory is None or self.lock is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call coursesync.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        return self.session_factory, self.lock


_STATE = _AdapterState()


def _create_engine(database: DatabaseConfig) -> Engine:
    connect_args: dict[str, Any] = {}
    if database.is_sqlite:
        connect_args["timeout"] = SQLITE_BUSY_TIMEOUT
    return create_engine(database.uri, echo=database.echo, connect_args=connect_args)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Create the engine, migrate the schema to head and prepare sessions and the lock."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        database = get_database_config()
        if database_uri is not None:
            database = DatabaseConfig(uri=database_uri, echo=database.echo)
        engine = _create_engine(database)
    upgrade_head(engine=engine)

    _STATE.engine = engine
    _STATE.session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    _STATE.lock = SqlAlchemyReconcileLock(engine)
    log.info(f"SQLAlchemy adapter started on {engine.url.render_as_string(hide_password=True)}")


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and forget it (used between tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
    _STATE.session_factory = None
    _STATE.lock = None


def reconcile_lock() -> SqlAlchemyReconcileLock:
    """Return the lease lock writing to the managed engine."""

    _, lock = _STATE.require_started()
    return lock


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """One session per ``with`` block, with repositories built on top of it.

    Leaving the block closes the session. An exception rolls back whatever the
    block had not committed yet.
    """

    def __init__(self) -> None:
        self.session_factory, _ = _STATE.require_started()
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> Self:
        if self._session is not None:
            raise StartupError("Unit of work session already open")
        self._session = self.session_factory()
        self._repositories = self._build_repositories(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not open; use it as a context manager")
        return self._session

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not open; use it as a context manager")
        return self._repositories


class SqlAlchemyReconciliationUnitOfWork(BaseSqlAlchemyUnitOfWork[ReconciliationRepositories]):
    """Unit of work over courses, associations, and a plan store.

    Plans live in the local database unless ``plan_store_factory`` supplies a
    different store, such as the HTTP plan API client. A plan store with a
    ``close`` method is closed when the block ends.
    """

    def __init__(self, plan_store_factory: PlanStoreFactory | None = None) -> None:
        super().__init__()
        self._plan_store_factory = plan_store_factory or SqlAlchemyPlanStore

    def _build_repositories(self, session: Session) -> ReconciliationRepositories:
        return ReconciliationRepositories(
            plans=self._plan_store_factory(session),
            associations=SqlAlchemyAssociationStore(session),
            courses=SqlAlchemyCourseRepository(session),
        )

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        plans = self._repositories.plans if self._repositories is not None else None
        try:
            return super().__exit__(exc_type, exc_value, traceback)
        finally:
            if isinstance(plans, _Closable):
                plans.close()


if TYPE_CHECKING:
    from coursesync.domain.ports import ReconciliationUnitOfWork

    _uow_check: ReconciliationUnitOfWork = SqlAlchemyReconciliationUnitOfWork()
