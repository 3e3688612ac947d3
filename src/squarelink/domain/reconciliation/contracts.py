"""Shared reconciliation contract types.

This module holds only:
- per-external-id duplicate findings
- auto-link outcomes
- the decision record handed to the upsert collaborator
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Literal, TypeAlias

if TYPE_CHECKING:
    from squarelink.domain.model import EntityKind, SourceRef


class ReconciliationError(Exception):
    """Base class for reconciliation failures raised to callers."""


class MissingIdentifierError(ReconciliationError, ValueError):
    """Raised when an identity is requested for a row without an external id."""

    def __init__(self, source: SourceRef) -> None:
        self.source = source
        super().__init__(f"Row has no external customer id: {source}")


@dataclass(frozen=True, slots=True, kw_only=True)
class HardDuplicateInfo:
    """Cluster membership of one external id that shares an email/phone."""

    is_primary: bool
    primary_external_id: str
    duplicate_emails: tuple[str, ...] = ()
    duplicate_phones: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SoftDuplicateInfo:
    """Sorted reason tags explaining why a row looks like another one."""

    reasons: tuple[str, ...]


class AutoLinkMatch(StrEnum):
    """Signal that produced the auto-link candidates."""

    EMAIL = "email"
    PHONE = "phone"

    @property
    def resolution(self) -> ResolutionCode:
        if self is AutoLinkMatch.EMAIL:
            return ResolutionCode.AUTO_LINKED_BY_EMAIL
        return ResolutionCode.AUTO_LINKED_BY_PHONE


@dataclass(frozen=True, slots=True, kw_only=True)
class NoAutoLink:
    """No eligible or ineligible candidate; the row becomes a new client."""

    note: str
    match: AutoLinkMatch | None = None
    kind: Literal["none"] = "none"


@dataclass(frozen=True, slots=True, kw_only=True)
class Linked:
    client_id: str
    match: AutoLinkMatch
    note: str
    kind: Literal["linked"] = "linked"


@dataclass(frozen=True, slots=True, kw_only=True)
class Ambiguous:
    """Top candidates tie on completeness and recency."""

    candidates: tuple[str, ...]
    match: AutoLinkMatch
    note: str
    kind: Literal["ambiguous"] = "ambiguous"

    def __post_init__(self) -> None:
        if len(self.candidates) < 2:
            raise ValueError("Ambiguous auto-link must name at least two candidates")


@dataclass(frozen=True, slots=True, kw_only=True)
class IneligibleExistingMapping:
    """The only textual match already belongs to another source customer."""

    client_id: str
    existing_external_id: str
    match: AutoLinkMatch
    note: str
    kind: Literal["ineligible"] = "ineligible"


AutoLinkResult: TypeAlias = NoAutoLink | Linked | Ambiguous | IneligibleExistingMapping


class DecisionState(StrEnum):
    """Terminal state of one identity."""

    SKIP_NON_PRIMARY_DUPLICATE = "skip_non_primary_duplicate"
    NEEDS_REVIEW_AMBIGUOUS = "needs_review_ambiguous"
    NEEDS_REVIEW_INELIGIBLE = "needs_review_ineligible"
    LINK_EXISTING = "link_existing"
    INSERT_NEW = "insert_new"
    UPDATE_EXISTING_MAPPING = "update_existing_mapping"
    BROKEN_EXISTING_MAPPING = "broken_existing_mapping"


class ImportAction(StrEnum):
    INSERT = "insert"
    LINK = "link"
    UPDATE = "update"
    SKIP = "skip"


class ResolutionCode(StrEnum):
    INSERTED_NEW = "inserted_new"
    AUTO_LINKED_BY_EMAIL = "auto_linked_by_email"
    AUTO_LINKED_BY_PHONE = "auto_linked_by_phone"
    EXISTING_SQUARE_CUSTOMER_ID = "existing_square_customer_id"
    NEEDS_REVIEW = "needs_review"
    NEEDS_REVIEW_SOFT_DUPLICATE = "needs_review_soft_duplicate"
    ERROR = "error"

    @property
    def needs_review(self) -> bool:
        return self.value.startswith("needs_review") or self is ResolutionCode.ERROR


class ErrorKind(StrEnum):
    MISSING_IDENTIFIER = "missing_identifier"
    AMBIGUOUS_MATCH = "ambiguous_match"
    INELIGIBLE_CANDIDATE = "ineligible_candidate"
    BROKEN_EXISTING_MAPPING = "broken_existing_mapping"


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportDecision:
    """What the upsert collaborator should do with one identity."""

    external_id: str
    display_name: str
    primary_email: str | None
    primary_phone: str | None
    entity_kind: EntityKind
    classification_reason: str
    source: SourceRef
    state: DecisionState
    action: ImportAction
    resolution: ResolutionCode
    note: str
    matched_client_id: str | None = None
    matched_person_id: str | None = None
    should_create_person: bool = False
    error_kind: ErrorKind | None = None
    is_error: bool = False

    @property
    def needs_review(self) -> bool:
        return self.resolution.needs_review


@dataclass(frozen=True, slots=True)
class MissingIdentifierRejection:
    """Row dropped before identity building because it has no external id."""

    source: SourceRef
    error_kind: ErrorKind = ErrorKind.MISSING_IDENTIFIER
