"""SQLAlchemy adapter package for the client registry."""

from __future__ import annotations

from .apply import SqlAlchemyDecisionApplier
from .mappings import create_all_tables, metadata
from .snapshot import SqlAlchemyClientSnapshotSource
from .unit_of_work import (
    SqlAlchemyImportUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from .verify import RegistryHealth, collect_registry_health

__all__ = [
    "RegistryHealth",
    "SqlAlchemyClientSnapshotSource",
    "SqlAlchemyDecisionApplier",
    "SqlAlchemyImportUnitOfWork",
    "StartupError",
    "collect_registry_health",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]
