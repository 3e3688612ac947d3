"""Batch snapshot of the client registry, loaded with a bounded number of queries."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select

from squarelink.domain.model import ClientSnapshot, ExistingClient, ExternalMapping
from squarelink.domain.reconciliation.normalize import normalize_email, normalize_phone

from .mappings import (
    client_contacts_table,
    client_integrations_square_table,
    clients_table,
    person_contacts_table,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from sqlalchemy.orm import Session

    from squarelink.config.matching import AutoLinkTier
    from squarelink.domain.model import CustomerIdentity

log = logging.getLogger(__name__)

# Keeps IN-lists below the bound-parameter limits of older SQLite builds.
_CHUNK_SIZE = 500


class SqlAlchemyClientSnapshotSource:
    def __init__(self, session: Session) -> None:
        self.session = session

    def load(self, identities: Iterable[CustomerIdentity], tier: AutoLinkTier) -> ClientSnapshot:
        identity_list = list(identities)
        emails = sorted(
            {email for identity in identity_list for email in identity.normalized_emails}
            if tier.uses_email
            else set()
        )
        phones = sorted(
            {phone for identity in identity_list for phone in identity.normalized_phones}
            if tier.uses_phone
            else set()
        )
        external_ids = sorted({identity.external_id for identity in identity_list})

        emails_by_person, phones_by_person = self._matching_contacts(emails, phones)
        person_ids = sorted(emails_by_person.keys() | phones_by_person.keys())
        client_ids_by_person = self._client_ids_by_person(person_ids)

        client_ids_by_email: dict[str, set[str]] = defaultdict(set)
        client_ids_by_phone: dict[str, set[str]] = defaultdict(set)
        for person_id, client_ids in client_ids_by_person.items():
            for email in emails_by_person.get(person_id, ()):
                client_ids_by_email[email].update(client_ids)
            for phone in phones_by_person.get(person_id, ()):
                client_ids_by_phone[phone].update(client_ids)

        candidate_ids = sorted({cid for ids in client_ids_by_person.values() for cid in ids})
        mappings = self._mappings_for(external_ids)
        mapped_client_ids = sorted(
            {mapping.client_id for mapping in mappings.values() if mapping.client_id}
        )
        clients = self._clients(sorted(set(candidate_ids) | set(mapped_client_ids)))
        mappings = {
            external_id: ExternalMapping(
                external_id=external_id,
                client_id=mapping.client_id,
                person_id=_primary_contact(clients, mapping.client_id),
            )
            for external_id, mapping in mappings.items()
        }

        snapshot = ClientSnapshot(
            clients=clients,
            client_ids_by_email={
                email: frozenset(ids) for email, ids in sorted(client_ids_by_email.items())
            },
            client_ids_by_phone={
                phone: frozenset(ids) for phone, ids in sorted(client_ids_by_phone.items())
            },
            external_id_by_client_id=self._external_ids_by_client(candidate_ids),
            mappings_by_external_id=mappings,
        )
        log.info(
            "Loaded registry snapshot: clients=%s emails=%s phones=%s mappings=%s",
            len(snapshot.clients),
            len(snapshot.client_ids_by_email),
            len(snapshot.client_ids_by_phone),
            len(snapshot.mappings_by_external_id),
        )
        return snapshot

    def _matching_contacts(
        self,
        emails: Sequence[str],
        phones: Sequence[str],
    ) -> tuple[dict[str, set[str]], dict[str, set[str]]]:
        emails_by_person: dict[str, set[str]] = defaultdict(set)
        phones_by_person: dict[str, set[str]] = defaultdict(set)
        wanted_emails = set(emails)
        wanted_phones = set(phones)

        for email_chunk, phone_chunk in _paired_chunks(emails, phones):
            stmt = select(
                person_contacts_table.c.person_id,
                person_contacts_table.c.email,
                person_contacts_table.c.phone,
            ).where(
                or_(
                    func.lower(func.trim(person_contacts_table.c.email)).in_(email_chunk),
                    person_contacts_table.c.phone.in_(phone_chunk),
                )
            )
            for person_id, raw_email, raw_phone in self.session.execute(stmt):
                email = normalize_email(raw_email)
                phone = normalize_phone(raw_phone)
                if email is not None and email in wanted_emails:
                    emails_by_person[person_id].add(email)
                if phone is not None and phone in wanted_phones:
                    phones_by_person[person_id].add(phone)
        return emails_by_person, phones_by_person

    def _client_ids_by_person(self, person_ids: Sequence[str]) -> dict[str, set[str]]:
        client_ids: dict[str, set[str]] = defaultdict(set)
        for chunk in _chunks(person_ids):
            contact_stmt = select(
                client_contacts_table.c.person_id,
                client_contacts_table.c.client_id,
            ).where(client_contacts_table.c.person_id.in_(chunk))
            primary_stmt = select(
                clients_table.c.primary_contact_person_id,
                clients_table.c.client_id,
            ).where(clients_table.c.primary_contact_person_id.in_(chunk))
            for person_id, client_id in (
                *self.session.execute(contact_stmt),
                *self.session.execute(primary_stmt),
            ):
                if client_id and client_id.strip():
                    client_ids[person_id].add(client_id.strip())
        return client_ids

    def _clients(self, client_ids: Sequence[str]) -> dict[str, ExistingClient]:
        clients: dict[str, ExistingClient] = {}
        for chunk in _chunks(client_ids):
            stmt = select(
                clients_table.c.client_id,
                clients_table.c.display_name,
                clients_table.c.primary_contact_person_id,
                clients_table.c.account_owner_person_id,
                clients_table.c.created_at,
                clients_table.c.updated_at,
            ).where(clients_table.c.client_id.in_(chunk))
            for row in self.session.execute(stmt):
                clients[row.client_id] = ExistingClient(
                    client_id=row.client_id,
                    display_name=row.display_name,
                    primary_contact_person_id=row.primary_contact_person_id,
                    account_owner_person_id=row.account_owner_person_id,
                    created_at=row.created_at,
                    updated_at=row.updated_at,
                )
        return dict(sorted(clients.items()))

    def _external_ids_by_client(self, client_ids: Sequence[str]) -> dict[str, str | None]:
        external_ids: dict[str, str | None] = {}
        integrations = client_integrations_square_table
        for chunk in _chunks(client_ids):
            stmt = select(integrations.c.client_id, integrations.c.square_customer_id).where(
                integrations.c.client_id.in_(chunk)
            )
            for client_id, square_customer_id in self.session.execute(stmt):
                external_ids.setdefault(client_id, square_customer_id)
        return external_ids

    def _mappings_for(self, external_ids: Sequence[str]) -> dict[str, ExternalMapping]:
        mappings: dict[str, ExternalMapping] = {}
        integrations = client_integrations_square_table
        for chunk in _chunks(external_ids):
            stmt = select(integrations.c.square_customer_id, integrations.c.client_id).where(
                integrations.c.square_customer_id.in_(chunk)
            )
            for external_id, client_id in self.session.execute(stmt):
                mappings[external_id] = ExternalMapping(
                    external_id=external_id,
                    client_id=client_id,
                )
        return mappings


def _primary_contact(clients: dict[str, ExistingClient], client_id: str | None) -> str | None:
    client = clients.get(client_id) if client_id else None
    return client.primary_contact_person_id if client else None


def _chunks(values: Sequence[str], size: int = _CHUNK_SIZE) -> Iterator[Sequence[str]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


def _paired_chunks(
    left: Sequence[str],
    right: Sequence[str],
    size: int = _CHUNK_SIZE,
) -> Iterator[tuple[Sequence[str], Sequence[str]]]:
    for start in range(0, max(len(left), len(right)), size):
        yield left[start : start + size], right[start : start + size]
