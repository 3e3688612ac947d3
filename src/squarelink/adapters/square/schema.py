"""Pydantic model describing one row of a Square customer export."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, field_validator

from squarelink.domain.model import CustomerRow, SourceRef

_HEADER_SEPARATORS = re.compile(r"[^0-9a-z]+")

REQUIRED_HEADER = "Square Customer ID"


def header_key(header: str) -> str:
    """``"Square Customer ID"`` -> ``"square_customer_id"``."""

    return _HEADER_SEPARATORS.sub("_", header.strip().lower()).strip("_")


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class SquareCustomerCsvRow(BaseModel):
    """Customer export columns, keyed by normalized header."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    square_customer_id: str | None = None
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

    _normalize_cells = field_validator("*", mode="before")(_blank_to_none)

    def to_customer_row(self, source: SourceRef) -> CustomerRow:
        return CustomerRow(
            source=source,
            external_id=self.square_customer_id,
            reference_id=self.reference_id,
            first_name=self.first_name,
            last_name=self.last_name,
            nickname=self.nickname,
            company_name=self.company_name,
            email_address=self.email_address,
            phone_number=self.phone_number,
            street_address_1=self.street_address_1,
            street_address_2=self.street_address_2,
            city=self.city,
            state=self.state,
            postal_code=self.postal_code,
            memo=self.memo,
            creation_source=self.creation_source,
        )
