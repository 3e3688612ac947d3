"""Domain types shared by the reconciliation stages.

Rows are what the export parser hands us; identities are the normalized view
the matchers work on; ``ExistingClient``/``ExternalMapping`` describe the
registry as seen through one batch snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True, order=True)
class SourceRef:
    """Position of a row inside its export file (ordering: row number, file)."""

    row_number: int
    file_name: str = ""

    def __str__(self) -> str:
        return f"{self.file_name}:{self.row_number}"


@dataclass(frozen=True, slots=True, kw_only=True)
class CustomerRow:
    """One customer row as exported by the point-of-sale platform."""

    source: SourceRef
    external_id: str | None
    reference_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    nickname: str | None = None
    company_name: str | None = None
    email_address: str | None = None
    phone_number: str | None = None
    street_address_1: str | None = None
    street_address_2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    memo: str | None = None
    creation_source: str | None = None

    @property
    def has_person_name(self) -> bool:
        return bool((self.first_name or "").strip() or (self.last_name or "").strip())


class EntityKind(StrEnum):
    INDIVIDUAL = "individual"
    ORGANIZATION = "organization"


@dataclass(frozen=True, slots=True, kw_only=True)
class CustomerIdentity:
    """Normalized, immutable view of one export row."""

    row: CustomerRow
    external_id: str
    display_name: str
    normalized_emails: tuple[str, ...] = ()
    normalized_phones: tuple[str, ...] = ()
    person_name_key: str | None = None
    organization_name_key: str | None = None
    city_key: str | None = None
    state_key: str | None = None
    postal_key: str | None = None
    entity_kind: EntityKind = EntityKind.INDIVIDUAL
    classification_reason: str = "default"
    should_create_person: bool = False

    @property
    def source(self) -> SourceRef:
        return self.row.source

    @property
    def primary_email(self) -> str | None:
        return self.normalized_emails[0] if self.normalized_emails else None

    @property
    def primary_phone(self) -> str | None:
        return self.normalized_phones[0] if self.normalized_phones else None

    @property
    def is_organization(self) -> bool:
        return self.entity_kind is EntityKind.ORGANIZATION


@dataclass(frozen=True, slots=True, kw_only=True)
class ExistingClient:
    """Registry client as loaded into the batch snapshot."""

    client_id: str
    display_name: str | None = None
    primary_contact_person_id: str | None = None
    account_owner_person_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def recency(self) -> datetime | None:
        return self.updated_at or self.created_at


@dataclass(frozen=True, slots=True, kw_only=True)
class ExternalMapping:
    """Existing link between a source customer id and a registry client."""

    external_id: str
    client_id: str | None
    person_id: str | None = None


@dataclass(slots=True, kw_only=True)
class ClientSnapshot:
    """Read-only registry data gathered once per batch by the persistence side.

    ``client_ids_by_email``/``client_ids_by_phone`` are keyed by normalized
    values. ``external_id_by_client_id`` holds the source customer id already
    mapped to a client (``None``/blank means the client is unmapped).
    """

    clients: dict[str, ExistingClient] = field(default_factory=dict[str, ExistingClient])
    client_ids_by_email: dict[str, frozenset[str]] = field(
        default_factory=dict[str, frozenset[str]]
    )
    client_ids_by_phone: dict[str, frozenset[str]] = field(
        default_factory=dict[str, frozenset[str]]
    )
    external_id_by_client_id: dict[str, str | None] = field(
        default_factory=dict[str, "str | None"]
    )
    mappings_by_external_id: dict[str, ExternalMapping] = field(
        default_factory=dict[str, ExternalMapping]
    )

    def mapping_for(self, external_id: str) -> ExternalMapping | None:
        return self.mappings_by_external_id.get(external_id)

    def client_for(self, client_id: str | None) -> ExistingClient | None:
        if client_id is None:
            return None
        return self.clients.get(client_id)
