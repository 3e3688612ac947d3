"""Identity building: one export row -> one ``CustomerIdentity``.

Classification only looks at the row's company/person names and the display
name tokens. It never consults duplicate findings, so the same row always
classifies the same way regardless of what else is in the batch.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from squarelink.config.matching import MatchingConfig
from squarelink.domain.model import CustomerIdentity, EntityKind

from .contracts import MissingIdentifierError
from .normalize import (
    name_key,
    normalize_email,
    normalize_name,
    normalize_phone,
    postal_key,
    split_multi_value,
    state_key,
    tokenize,
)

if TYPE_CHECKING:
    from squarelink.domain.model import CustomerRow


def build_customer_identity(
    row: CustomerRow,
    *,
    config: MatchingConfig | None = None,
) -> CustomerIdentity:
    """Normalize ``row`` into an identity; raises ``MissingIdentifierError`` without an id."""

    cfg = config or MatchingConfig()
    external_id = (row.external_id or "").strip()
    if not external_id:
        raise MissingIdentifierError(row.source)

    display_name = compute_display_name(row, external_id, placeholder_prefix=cfg.placeholder_prefix)
    entity_kind, reason = classify_entity_kind(row, display_name, config=cfg)

    emails = split_multi_value(row.email_address, normalize_email)
    phones = split_multi_value(row.phone_number, normalize_phone)

    should_create_person = row.has_person_name
    if entity_kind is not EntityKind.ORGANIZATION:
        should_create_person = should_create_person or bool(emails) or bool(phones)

    return CustomerIdentity(
        row=row,
        external_id=external_id,
        display_name=display_name,
        normalized_emails=emails,
        normalized_phones=phones,
        person_name_key=_person_name_key(row, display_name),
        organization_name_key=_organization_name_key(row, display_name, entity_kind),
        city_key=name_key(row.city),
        state_key=state_key(row.state),
        postal_key=postal_key(row.postal_code),
        entity_kind=entity_kind,
        classification_reason=reason,
        should_create_person=should_create_person,
    )


def compute_display_name(row: CustomerRow, external_id: str, *, placeholder_prefix: str) -> str:
    """Best available name, never empty."""

    company = normalize_name(row.company_name)
    if company:
        return company

    full_name = full_person_name(row)
    if full_name:
        return full_name

    for candidate in (row.nickname, row.email_address, row.phone_number):
        if candidate is not None and candidate.strip():
            return candidate.strip()

    return f"{placeholder_prefix}{external_id}"


def full_person_name(row: CustomerRow) -> str | None:
    first = normalize_name(row.first_name)
    last = normalize_name(row.last_name)
    if not first and not last:
        return None
    return f"{first or ''} {last or ''}".strip()


def classify_entity_kind(
    row: CustomerRow,
    display_name: str,
    *,
    config: MatchingConfig,
) -> tuple[EntityKind, str]:
    if normalize_name(row.company_name):
        return EntityKind.ORGANIZATION, "company_name_present"

    if row.has_person_name:
        return EntityKind.INDIVIDUAL, "person_name_present"

    indicator = config.organization_indicators.first_match(tokenize(display_name))
    if indicator is not None:
        return EntityKind.ORGANIZATION, f"display_name_indicator:{indicator}"

    return EntityKind.INDIVIDUAL, "default"


def _person_name_key(row: CustomerRow, display_name: str) -> str | None:
    full_name = full_person_name(row)
    if full_name:
        return name_key(full_name)
    return name_key(display_name)


def _organization_name_key(
    row: CustomerRow,
    display_name: str,
    entity_kind: EntityKind,
) -> str | None:
    company = normalize_name(row.company_name)
    if company:
        return name_key(company)
    if entity_kind is EntityKind.ORGANIZATION:
        return name_key(display_name)
    return None
