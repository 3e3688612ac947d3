"""Registry health counters printed by ``squarelink verify``."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select

from squarelink.domain.reconciliation.normalize import normalize_email

from .mappings import (
    client_contacts_table,
    client_integrations_square_table,
    clients_table,
    people_table,
    person_contacts_table,
)

if TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.orm import Session

log = logging.getLogger(__name__)

_TOP_DUPLICATE_EMAILS = 20


@dataclass(slots=True)
class RegistryHealth:
    total_clients: int = 0
    total_people: int = 0
    total_square_mappings: int = 0
    clients_missing_square_mapping: int = 0
    square_mappings_missing_customer_id: int = 0
    duplicate_emails: list[tuple[str, tuple[str, ...]]] = field(
        default_factory=list[tuple[str, tuple[str, ...]]]
    )

    def lines(self) -> list[str]:
        lines = [
            f"verify total_clients={self.total_clients}",
            f"verify total_people={self.total_people}",
            f"verify total_client_integrations_square={self.total_square_mappings}",
            f"verify clients_missing_square_integration={self.clients_missing_square_mapping}",
            "verify square_integrations_missing_square_customer_id="
            f"{self.square_mappings_missing_customer_id}",
        ]
        if not self.duplicate_emails:
            lines.append(f"verify duplicate_emails_top{_TOP_DUPLICATE_EMAILS}=none")
            return lines
        lines.append(
            f"verify duplicate_emails_top{_TOP_DUPLICATE_EMAILS}={len(self.duplicate_emails)}"
        )
        lines.extend(
            f"verify dup-email {email} => {', '.join(ids)}" for email, ids in self.duplicate_emails
        )
        return lines


def collect_registry_health(session: Session) -> RegistryHealth:
    """Count registry rows and find emails shared by several Square customers."""

    integrations = client_integrations_square_table
    health = RegistryHealth(
        total_clients=_count(session, select(func.count()).select_from(clients_table)),
        total_people=_count(session, select(func.count()).select_from(people_table)),
        total_square_mappings=_count(session, select(func.count()).select_from(integrations)),
        clients_missing_square_mapping=_count(
            session,
            select(func.count())
            .select_from(clients_table)
            .where(~clients_table.c.client_id.in_(select(integrations.c.client_id))),
        ),
        square_mappings_missing_customer_id=_count(
            session,
            select(func.count())
            .select_from(integrations)
            .where(
                or_(
                    integrations.c.square_customer_id.is_(None),
                    integrations.c.square_customer_id == "",
                )
            ),
        ),
    )

    stmt = (
        select(person_contacts_table.c.email, integrations.c.square_customer_id)
        .join(
            client_contacts_table,
            client_contacts_table.c.client_id == integrations.c.client_id,
        )
        .join(
            person_contacts_table,
            person_contacts_table.c.person_id == client_contacts_table.c.person_id,
        )
        .where(client_contacts_table.c.is_primary)
    )
    ids_by_email: dict[str, set[str]] = defaultdict(set)
    for raw_email, square_customer_id in session.execute(stmt):
        email = normalize_email(raw_email)
        if email and square_customer_id and square_customer_id.strip():
            ids_by_email[email].add(square_customer_id)

    duplicates = [
        (email, tuple(sorted(ids))) for email, ids in ids_by_email.items() if len(ids) > 1
    ]
    duplicates.sort(key=lambda item: (-len(item[1]), item[0]))
    health.duplicate_emails = duplicates[:_TOP_DUPLICATE_EMAILS]
    log.debug("Registry health: %s", health)
    return health


def _count(session: Session, stmt: Select[tuple[int]]) -> int:
    return int(session.execute(stmt).scalar_one())
