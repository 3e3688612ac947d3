"""SQLAlchemy-backed unit of work for customer imports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from squarelink.config.matching import MatchingConfig
from squarelink.config.storage import get_database_config
from squarelink.domain.ports.unit_of_work import ImportRepositories

from .apply import SqlAlchemyDecisionApplier
from .mappings import create_all_tables
from .snapshot import SqlAlchemyClientSnapshotSource

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call squarelink.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the engine, create missing tables and reset the session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(database_uri or get_database_config().uri)
    create_all_tables(resolved_engine)
    if _STATE.engine is not None and _STATE.engine is not resolved_engine:
        _STATE.engine.dispose()
    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class SqlAlchemyImportUnitOfWork:
    """One import transaction: snapshot reads and decision writes share a session."""

    def __init__(self, *, config: MatchingConfig | None = None) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self.config = config or MatchingConfig()
        self._session: Session | None = None
        self._repositories: ImportRepositories | None = None

    def __enter__(self) -> SqlAlchemyImportUnitOfWork:
        self.session = self.session_factory()
        self._repositories = ImportRepositories(
            snapshots=SqlAlchemyClientSnapshotSource(self.session),
            applier=SqlAlchemyDecisionApplier(self.session, config=self.config),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> ImportRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


if TYPE_CHECKING:
    from squarelink.domain.ports.unit_of_work import ImportUnitOfWork

    _uow_check: ImportUnitOfWork = SqlAlchemyImportUnitOfWork()
