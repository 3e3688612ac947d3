"""Apply import decisions to the client registry tables.

Each decision touches at most one client, one person, that person's contact
row, the client/person link and the Square integration mapping. Existing
values are only overwritten when the incoming value is better (placeholder
display names, missing primary contacts, individual -> organization).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import insert, select, update

from squarelink.config.matching import MatchingConfig
from squarelink.domain.model import EntityKind
from squarelink.domain.ports.persistence import ApplyStats
from squarelink.domain.reconciliation.contracts import ImportAction
from squarelink.domain.reconciliation.identity import full_person_name
from squarelink.domain.reconciliation.normalize import normalize_name
from squarelink.domain.reconciliation.resolve import looks_like_placeholder

from .mappings import (
    client_contacts_table,
    client_integrations_square_table,
    clients_table,
    new_entity_id,
    people_table,
    person_contacts_table,
    utc_now,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from sqlalchemy import Row
    from sqlalchemy.orm import Session

    from squarelink.domain.model import CustomerIdentity
    from squarelink.domain.reconciliation.contracts import ImportDecision

log = logging.getLogger(__name__)

CLIENT_ID_PREFIX = "cli"
PERSON_ID_PREFIX = "per"


class SqlAlchemyDecisionApplier:
    def __init__(self, session: Session, *, config: MatchingConfig | None = None) -> None:
        self.session = session
        self.config = config or MatchingConfig()

    def apply(
        self,
        decisions: Iterable[ImportDecision],
        identities: Mapping[str, CustomerIdentity],
    ) -> ApplyStats:
        stats = ApplyStats()
        for decision in decisions:
            identity = identities.get(decision.external_id)
            if decision.action is ImportAction.SKIP or identity is None:
                stats.decisions_skipped += 1
                continue
            if decision.action is ImportAction.INSERT:
                self._insert(identity, stats)
            else:
                self._upsert_existing(decision, identity, stats)
        self.session.flush()
        log.info(
            "Applied decisions: clients +%s/~%s people +%s/~%s mappings +%s/~%s skipped=%s",
            stats.clients_inserted,
            stats.clients_updated,
            stats.people_inserted,
            stats.people_updated,
            stats.mappings_inserted,
            stats.mappings_updated,
            stats.decisions_skipped,
        )
        return stats

    def _insert(self, identity: CustomerIdentity, stats: ApplyStats) -> None:
        client_id = new_entity_id(CLIENT_ID_PREFIX)
        person_id = new_entity_id(PERSON_ID_PREFIX) if identity.should_create_person else None

        if person_id is not None:
            self._upsert_person(person_id, identity, stats)
        self.session.execute(
            insert(clients_table).values(
                client_id=client_id,
                display_name=identity.display_name,
                client_type_key=identity.entity_kind.value,
                primary_contact_person_id=person_id,
                created_at=utc_now(),
            )
        )
        stats.clients_inserted += 1
        if person_id is not None:
            self._upsert_person_contact(person_id, identity, stats)
            self._upsert_client_contact(client_id, person_id, is_primary=True, stats=stats)
        self._upsert_mapping(client_id, identity, stats)

    def _upsert_existing(
        self,
        decision: ImportDecision,
        identity: CustomerIdentity,
        stats: ApplyStats,
    ) -> None:
        client_id = decision.matched_client_id
        client = self._client_row(client_id) if client_id else None
        if client_id is None or client is None:
            log.warning(
                "Client %s for %s vanished before apply; skipping",
                client_id,
                decision.external_id,
            )
            stats.decisions_skipped += 1
            return

        person_id = self._resolve_person_id(client, identity)
        if person_id is not None:
            self._upsert_person(person_id, identity, stats)
        primary_contact = client.primary_contact_person_id or person_id
        self._update_client(client, identity, primary_contact, stats)
        if person_id is not None:
            self._upsert_person_contact(person_id, identity, stats)
            self._upsert_client_contact(
                client_id,
                person_id,
                is_primary=primary_contact == person_id,
                stats=stats,
            )
        self._upsert_mapping(client_id, identity, stats)

    def _client_row(self, client_id: str) -> Row[Any] | None:
        stmt = select(clients_table).where(clients_table.c.client_id == client_id)
        return self.session.execute(stmt).first()

    def _resolve_person_id(self, client: Row[Any], identity: CustomerIdentity) -> str | None:
        if not identity.should_create_person:
            return None
        if client.primary_contact_person_id is not None:
            return client.primary_contact_person_id
        stmt = (
            select(client_contacts_table.c.person_id)
            .where(client_contacts_table.c.client_id == client.client_id)
            .order_by(client_contacts_table.c.is_primary.desc(), client_contacts_table.c.person_id)
            .limit(1)
        )
        existing = self.session.execute(stmt).scalar_one_or_none()
        return existing or new_entity_id(PERSON_ID_PREFIX)

    def _update_client(
        self,
        client: Row[Any],
        identity: CustomerIdentity,
        primary_contact: str | None,
        stats: ApplyStats,
    ) -> None:
        values: dict[str, object] = {}
        if looks_like_placeholder(client.display_name, config=self.config) and (
            identity.display_name.strip() and identity.display_name != client.display_name
        ):
            values["display_name"] = identity.display_name
        if identity.is_organization and client.client_type_key != EntityKind.ORGANIZATION.value:
            values["client_type_key"] = EntityKind.ORGANIZATION.value
        if client.primary_contact_person_id is None and primary_contact is not None:
            values["primary_contact_person_id"] = primary_contact
        if not values:
            return
        values["updated_at"] = utc_now()
        self.session.execute(
            update(clients_table)
            .where(clients_table.c.client_id == client.client_id)
            .values(**values)
        )
        stats.clients_updated += 1

    def _upsert_person(self, person_id: str, identity: CustomerIdentity, stats: ApplyStats) -> None:
        row = identity.row
        first_name = normalize_name(row.first_name)
        last_name = normalize_name(row.last_name)
        display_name = full_person_name(row)

        existing = self.session.execute(
            select(people_table).where(people_table.c.person_id == person_id)
        ).first()
        if existing is None:
            self.session.execute(
                insert(people_table).values(
                    person_id=person_id,
                    first_name=first_name,
                    last_name=last_name,
                    display_name=display_name or identity.display_name,
                    created_at=utc_now(),
                )
            )
            stats.people_inserted += 1
            return

        desired = {
            "first_name": first_name or existing.first_name,
            "last_name": last_name or existing.last_name,
            "display_name": display_name or existing.display_name,
        }
        if all(getattr(existing, key) == value for key, value in desired.items()):
            return
        self.session.execute(
            update(people_table)
            .where(people_table.c.person_id == person_id)
            .values(**desired, updated_at=utc_now())
        )
        stats.people_updated += 1

    def _upsert_person_contact(
        self,
        person_id: str,
        identity: CustomerIdentity,
        stats: ApplyStats,
    ) -> None:
        email = identity.primary_email
        phone = identity.primary_phone
        if email is None and phone is None:
            return

        existing = self.session.execute(
            select(person_contacts_table).where(person_contacts_table.c.person_id == person_id)
        ).first()
        if existing is None:
            self.session.execute(
                insert(person_contacts_table).values(
                    person_id=person_id,
                    email=email,
                    phone=phone,
                    updated_at=utc_now(),
                )
            )
            stats.person_contacts_inserted += 1
            return

        desired_email = email or existing.email
        desired_phone = phone or existing.phone
        if (desired_email, desired_phone) == (existing.email, existing.phone):
            return
        self.session.execute(
            update(person_contacts_table)
            .where(person_contacts_table.c.person_id == person_id)
            .values(email=desired_email, phone=desired_phone, updated_at=utc_now())
        )
        stats.person_contacts_updated += 1

    def _upsert_client_contact(
        self,
        client_id: str,
        person_id: str,
        *,
        is_primary: bool,
        stats: ApplyStats,
    ) -> None:
        table = client_contacts_table
        existing = self.session.execute(
            select(table.c.is_primary).where(
                table.c.client_id == client_id,
                table.c.person_id == person_id,
            )
        ).first()
        if existing is None:
            self.session.execute(
                insert(table).values(
                    client_id=client_id,
                    person_id=person_id,
                    is_primary=is_primary,
                    created_at=utc_now(),
                )
            )
            stats.client_contacts_inserted += 1
            return
        if bool(existing.is_primary) == is_primary:
            return
        self.session.execute(
            update(table)
            .where(table.c.client_id == client_id, table.c.person_id == person_id)
            .values(is_primary=is_primary)
        )
        stats.client_contacts_updated += 1

    def _upsert_mapping(
        self,
        client_id: str,
        identity: CustomerIdentity,
        stats: ApplyStats,
    ) -> None:
        table = client_integrations_square_table
        row = identity.row
        existing = self.session.execute(select(table).where(table.c.client_id == client_id)).first()
        if existing is None:
            self.session.execute(
                insert(table).values(
                    client_id=client_id,
                    square_customer_id=identity.external_id,
                    reference_id=row.reference_id,
                    creation_source_key=row.creation_source,
                    created_at=utc_now(),
                )
            )
            stats.mappings_inserted += 1
            return

        current = (existing.square_customer_id or "").strip()
        if current and current != identity.external_id:
            log.warning(
                "Client %s is already mapped to %s; not remapping to %s",
                client_id,
                current,
                identity.external_id,
            )
            stats.mapping_conflicts += 1
            return

        desired = {
            "square_customer_id": identity.external_id,
            "reference_id": row.reference_id or existing.reference_id,
            "creation_source_key": row.creation_source or existing.creation_source_key,
        }
        if all(getattr(existing, key) == value for key, value in desired.items()):
            return
        self.session.execute(
            update(table)
            .where(table.c.client_id == client_id)
            .values(**desired, updated_at=utc_now())
        )
        stats.mappings_updated += 1
