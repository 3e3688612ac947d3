"""Factories for export rows, identities and registry snapshots used in tests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from squarelink.domain.model import (
    ClientSnapshot,
    CustomerIdentity,
    CustomerRow,
    ExistingClient,
    ExternalMapping,
    SourceRef,
)
from squarelink.domain.reconciliation.identity import build_customer_identity

if TYPE_CHECKING:
    from pathlib import Path


def make_row(
    external_id: str | None,
    *,
    row_number: int = 2,
    file_name: str = "customers.csv",
    **fields: str | None,
) -> CustomerRow:
    return CustomerRow(
        source=SourceRef(row_number=row_number, file_name=file_name),
        external_id=external_id,
        **fields,
    )


def make_identity(
    external_id: str,
    *,
    row_number: int = 2,
    **fields: str | None,
) -> CustomerIdentity:
    return build_customer_identity(make_row(external_id, row_number=row_number, **fields))


def make_identities(*rows: dict[str, str | None]) -> list[CustomerIdentity]:
    """Build identities in order; row numbers follow file lines (first data row is 2)."""

    identities: list[CustomerIdentity] = []
    for offset, fields in enumerate(rows):
        values = dict(fields)
        external_id = values.pop("external_id")
        assert external_id is not None
        identities.append(make_identity(external_id, row_number=offset + 2, **values))
    return identities


def make_client(
    client_id: str,
    *,
    display_name: str | None = "Existing Client",
    primary_contact_person_id: str | None = None,
    account_owner_person_id: str | None = None,
    updated_at: datetime | None = None,
    created_at: datetime | None = None,
) -> ExistingClient:
    return ExistingClient(
        client_id=client_id,
        display_name=display_name,
        primary_contact_person_id=primary_contact_person_id,
        account_owner_person_id=account_owner_person_id,
        created_at=created_at or datetime(2024, 1, 1, tzinfo=UTC),
        updated_at=updated_at,
    )


def make_snapshot(
    *clients: ExistingClient,
    emails: dict[str, set[str]] | None = None,
    phones: dict[str, set[str]] | None = None,
    external_ids: dict[str, str | None] | None = None,
    mappings: dict[str, str | None] | None = None,
) -> ClientSnapshot:
    return ClientSnapshot(
        clients={client.client_id: client for client in clients},
        client_ids_by_email={key: frozenset(ids) for key, ids in (emails or {}).items()},
        client_ids_by_phone={key: frozenset(ids) for key, ids in (phones or {}).items()},
        external_id_by_client_id=dict(external_ids or {}),
        mappings_by_external_id={
            external_id: ExternalMapping(external_id=external_id, client_id=client_id)
            for external_id, client_id in (mappings or {}).items()
        },
    )


def write_export(path: Path, lines: list[str]) -> None:
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
