"""Reconciliation core for customer exports.

Layered flow:
1) build one normalized identity per export row
2) detect hard duplicates (shared email/phone, transitively) and elect primaries
3) flag soft duplicates (name+location, display-name tokens)
4) resolve auto-links against the registry snapshot
5) emit one decision per identity for the upsert collaborator
"""

from __future__ import annotations

from .contracts import (
    Ambiguous,
    AutoLinkMatch,
    AutoLinkResult,
    DecisionState,
    ErrorKind,
    HardDuplicateInfo,
    ImportAction,
    ImportDecision,
    IneligibleExistingMapping,
    Linked,
    MissingIdentifierError,
    MissingIdentifierRejection,
    NoAutoLink,
    ReconciliationError,
    ResolutionCode,
    SoftDuplicateInfo,
)
from .deduplicate import HardDuplicates, SoftDuplicates
from .engine import ImportStats, ReconciliationBatch, ReconciliationEngine, ReconciliationResult

__all__ = [
    "Ambiguous",
    "AutoLinkMatch",
    "AutoLinkResult",
    "DecisionState",
    "ErrorKind",
    "HardDuplicateInfo",
    "HardDuplicates",
    "ImportAction",
    "ImportDecision",
    "ImportStats",
    "IneligibleExistingMapping",
    "Linked",
    "MissingIdentifierError",
    "MissingIdentifierRejection",
    "NoAutoLink",
    "ReconciliationBatch",
    "ReconciliationEngine",
    "ReconciliationError",
    "ReconciliationResult",
    "ResolutionCode",
    "SoftDuplicateInfo",
    "SoftDuplicates",
]
