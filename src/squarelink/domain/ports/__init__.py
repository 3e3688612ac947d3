"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import ApplyStats, ClientSnapshotSource, DecisionApplier
from .unit_of_work import ImportRepositories, ImportUnitOfWork

__all__ = [
    "ApplyStats",
    "ClientSnapshotSource",
    "DecisionApplier",
    "ImportRepositories",
    "ImportUnitOfWork",
]
