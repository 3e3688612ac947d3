"""SQLAlchemy Core tables for the client registry."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    ForeignKey,
    MetaData,
    String,
    Table,
    TypeDecorator,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware timestamps; naive values are taken as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_entity_id(prefix: str) -> str:
    """``new_entity_id("cli")`` -> ``"cli_<32 hex chars>"``."""

    return f"{prefix.rstrip('_')}_{uuid.uuid4().hex}"


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

people_table = Table(
    "people",
    metadata,
    Column("person_id", String, primary_key=True),
    Column("first_name", String, nullable=True),
    Column("last_name", String, nullable=True),
    Column("display_name", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False, default=utc_now),
    Column("updated_at", UTCDateTime(), nullable=True),
)

clients_table = Table(
    "clients",
    metadata,
    Column("client_id", String, primary_key=True),
    Column("display_name", String, nullable=False),
    Column("client_type_key", String, nullable=False),
    Column(
        "primary_contact_person_id",
        String,
        ForeignKey("people.person_id"),
        nullable=True,
        index=True,
    ),
    Column("account_owner_person_id", String, ForeignKey("people.person_id"), nullable=True),
    Column("notes", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False, default=utc_now),
    Column("updated_at", UTCDateTime(), nullable=True),
)

person_contacts_table = Table(
    "person_contacts",
    metadata,
    Column("person_id", String, ForeignKey("people.person_id"), primary_key=True),
    Column("email", String, nullable=True, index=True),
    Column("phone", String, nullable=True, index=True),
    Column("updated_at", UTCDateTime(), nullable=True),
)

client_contacts_table = Table(
    "client_contacts",
    metadata,
    Column("client_id", String, ForeignKey("clients.client_id"), primary_key=True),
    Column("person_id", String, ForeignKey("people.person_id"), primary_key=True, index=True),
    Column("is_primary", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime(), nullable=False, default=utc_now),
)

client_integrations_square_table = Table(
    "client_integrations_square",
    metadata,
    Column("client_id", String, ForeignKey("clients.client_id"), primary_key=True),
    Column("square_customer_id", String, nullable=True, unique=True),
    Column("reference_id", String, nullable=True),
    Column("creation_source_key", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False, default=utc_now),
    Column("updated_at", UTCDateTime(), nullable=True),
)


def create_all_tables(engine: Engine) -> None:
    """Create registry tables that do not exist yet."""

    log.info("Creating registry tables")
    metadata.create_all(engine)
