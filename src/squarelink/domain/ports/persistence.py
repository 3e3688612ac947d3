"""Ports for reading the client registry and applying import decisions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from squarelink.config.matching import AutoLinkTier
    from squarelink.domain.model import ClientSnapshot, CustomerIdentity
    from squarelink.domain.reconciliation.contracts import ImportDecision


@runtime_checkable
class ClientSnapshotSource(Protocol):
    """Loads the registry data one batch needs, in a bounded number of queries."""

    def load(
        self,
        identities: Iterable[CustomerIdentity],
        tier: AutoLinkTier,
    ) -> ClientSnapshot: ...


@dataclass(slots=True)
class ApplyStats:
    """Row-level writes performed while applying decisions."""

    clients_inserted: int = 0
    clients_updated: int = 0
    people_inserted: int = 0
    people_updated: int = 0
    person_contacts_inserted: int = 0
    person_contacts_updated: int = 0
    client_contacts_inserted: int = 0
    client_contacts_updated: int = 0
    mappings_inserted: int = 0
    mappings_updated: int = 0
    mapping_conflicts: int = 0
    decisions_skipped: int = 0

    @property
    def total_writes(self) -> int:
        return (
            self.clients_inserted
            + self.clients_updated
            + self.people_inserted
            + self.people_updated
            + self.person_contacts_inserted
            + self.person_contacts_updated
            + self.client_contacts_inserted
            + self.client_contacts_updated
            + self.mappings_inserted
            + self.mappings_updated
        )


@runtime_checkable
class DecisionApplier(Protocol):
    """Upsert collaborator: turns decisions into registry writes."""

    def apply(
        self,
        decisions: Iterable[ImportDecision],
        identities: Mapping[str, CustomerIdentity],
    ) -> ApplyStats: ...
