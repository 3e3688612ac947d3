"""Orchestrator for the customer reconciliation stages.

The engine is pure: it reads export rows and a registry snapshot and produces
decisions. Applying them is the job of a separate collaborator (see
``squarelink.domain.ports``).
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

from squarelink.config.matching import MatchingConfig
from squarelink.domain.model import ClientSnapshot

from .contracts import (
    ImportAction,
    ImportDecision,
    MissingIdentifierRejection,
    ResolutionCode,
)
from .deduplicate import (
    HardDuplicates,
    SoftDuplicates,
    detect_hard_duplicates,
    detect_soft_duplicates,
)
from .identity import build_customer_identity
from .policy import decide
from .resolve import AutoLinkIndex

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from squarelink.domain.model import CustomerIdentity, CustomerRow
    from squarelink.domain.ports.persistence import ClientSnapshotSource

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ImportStats:
    """Counters for one reconciled batch."""

    total_rows: int = 0
    organizations: int = 0
    individuals: int = 0
    inserted: int = 0
    updated: int = 0
    linked: int = 0
    skipped: int = 0
    needs_review: int = 0
    errors: int = 0
    auto_linked_by_email: int = 0
    auto_linked_by_phone: int = 0
    hard_duplicate_rows: int = 0
    soft_duplicate_rows: int = 0
    duplicate_external_ids_skipped: int = 0
    missing_identifiers: int = 0

    def record_identity(self, identity: CustomerIdentity) -> None:
        if identity.is_organization:
            self.organizations += 1
        else:
            self.individuals += 1

    def record_decision(self, decision: ImportDecision) -> None:
        if decision.action is ImportAction.INSERT:
            self.inserted += 1
        elif decision.action is ImportAction.UPDATE:
            self.updated += 1
        elif decision.action is ImportAction.LINK:
            self.linked += 1
        else:
            self.skipped += 1

        if decision.resolution is ResolutionCode.AUTO_LINKED_BY_EMAIL:
            self.auto_linked_by_email += 1
        elif decision.resolution is ResolutionCode.AUTO_LINKED_BY_PHONE:
            self.auto_linked_by_phone += 1
        elif decision.resolution is ResolutionCode.NEEDS_REVIEW:
            self.needs_review += 1

        if decision.is_error:
            self.errors += 1

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(slots=True)
class ReconciliationBatch:
    """Materialized batch state; decisions are produced lazily from it.

    Duplicate findings are computed over the whole batch before the first
    decision, since a late row can merge two earlier clusters.
    """

    identities: list[CustomerIdentity]
    hard_duplicates: HardDuplicates
    soft_duplicates: SoftDuplicates
    rejections: list[MissingIdentifierRejection]
    snapshot: ClientSnapshot
    index: AutoLinkIndex
    config: MatchingConfig
    stats: ImportStats

    def iter_decisions(self) -> Iterator[ImportDecision]:
        """Yield one decision per identity in batch order, updating ``stats``."""

        for identity in self.identities:
            decision = decide(
                identity,
                hard=self.hard_duplicates,
                index=self.index,
                snapshot=self.snapshot,
                config=self.config,
            )
            self.stats.record_decision(decision)
            yield decision


@dataclass(slots=True)
class ReconciliationResult:
    identities: list[CustomerIdentity]
    decisions: list[ImportDecision]
    hard_duplicates: HardDuplicates
    soft_duplicates: SoftDuplicates
    rejections: list[MissingIdentifierRejection]
    stats: ImportStats

    def identity_for(self, external_id: str) -> CustomerIdentity | None:
        for identity in self.identities:
            if identity.external_id == external_id:
                return identity
        return None


@dataclass(slots=True)
class ReconciliationEngine:
    """Run identity building, duplicate detection and decisions for one batch."""

    config: MatchingConfig = field(default_factory=MatchingConfig)

    def prepare(
        self,
        rows: Iterable[CustomerRow],
        snapshot: ClientSnapshot | ClientSnapshotSource,
    ) -> ReconciliationBatch:
        """Build identities and duplicate findings; ``snapshot`` may be a loader."""

        stats = ImportStats()
        rejections: list[MissingIdentifierRejection] = []
        kept: dict[str, CustomerRow] = {}

        for row in rows:
            stats.total_rows += 1
            external_id = (row.external_id or "").strip()
            if not external_id:
                log.warning("Skipping row without customer id at %s", row.source)
                rejections.append(MissingIdentifierRejection(row.source))
                stats.missing_identifiers += 1
                stats.errors += 1
                continue
            if external_id in kept:
                stats.duplicate_external_ids_skipped += 1
                continue
            kept[external_id] = row

        ordered = sorted(kept.items(), key=lambda item: (item[1].source.row_number, item[0]))
        identities = [build_customer_identity(row, config=self.config) for _id, row in ordered]
        for identity in identities:
            stats.record_identity(identity)

        hard = detect_hard_duplicates(identities)
        soft = detect_soft_duplicates(identities, config=self.config)
        stats.hard_duplicate_rows = hard.row_count
        stats.soft_duplicate_rows = soft.row_count

        if not isinstance(snapshot, ClientSnapshot):
            snapshot = snapshot.load(identities, self.config.auto_link_tier)

        if stats.duplicate_external_ids_skipped:
            log.info(
                "Skipped %s repeated customer ids (first occurrence kept)",
                stats.duplicate_external_ids_skipped,
            )

        return ReconciliationBatch(
            identities=identities,
            hard_duplicates=hard,
            soft_duplicates=soft,
            rejections=rejections,
            snapshot=snapshot,
            index=AutoLinkIndex.from_snapshot(snapshot),
            config=self.config,
            stats=stats,
        )

    def reconcile(
        self,
        rows: Iterable[CustomerRow],
        snapshot: ClientSnapshot | ClientSnapshotSource,
    ) -> ReconciliationResult:
        """Run all reconciliation stages for ``rows`` against ``snapshot``."""

        batch = self.prepare(rows, snapshot)
        decisions = list(batch.iter_decisions())
        log.info(
            "Reconciled %s identities: inserted=%s linked=%s updated=%s skipped=%s "
            "needs_review=%s errors=%s",
            len(batch.identities),
            batch.stats.inserted,
            batch.stats.linked,
            batch.stats.updated,
            batch.stats.skipped,
            batch.stats.needs_review,
            batch.stats.errors,
        )
        return ReconciliationResult(
            identities=batch.identities,
            decisions=decisions,
            hard_duplicates=batch.hard_duplicates,
            soft_duplicates=batch.soft_duplicates,
            rejections=batch.rejections,
            stats=batch.stats,
        )
