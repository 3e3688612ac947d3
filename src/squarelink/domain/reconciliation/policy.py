"""Decision policy: duplicate findings + auto-link outcome -> one ``ImportDecision``.

Precedence for a single identity:
1) a non-primary hard duplicate without an existing mapping is skipped
2) an existing mapping for the external id is updated (or reported broken)
3) otherwise the auto-link outcome decides between link, review and insert

Soft-duplicate findings never change the decision; they only annotate reports.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from squarelink.config.matching import MatchingConfig

from .contracts import (
    Ambiguous,
    DecisionState,
    ErrorKind,
    ImportAction,
    ImportDecision,
    IneligibleExistingMapping,
    Linked,
    ResolutionCode,
)
from .resolve import resolve_auto_link

if TYPE_CHECKING:
    from squarelink.domain.model import ClientSnapshot, CustomerIdentity, ExternalMapping

    from .deduplicate import HardDuplicates
    from .resolve import AutoLinkIndex

log = logging.getLogger(__name__)


def decide(
    identity: CustomerIdentity,
    *,
    hard: HardDuplicates,
    index: AutoLinkIndex,
    snapshot: ClientSnapshot,
    config: MatchingConfig | None = None,
) -> ImportDecision:
    cfg = config or MatchingConfig()
    mapping = snapshot.mapping_for(identity.external_id)
    hard_info = hard.info_for(identity.external_id)

    if mapping is None and hard_info is not None and not hard_info.is_primary:
        return _decision(
            identity,
            state=DecisionState.SKIP_NON_PRIMARY_DUPLICATE,
            action=ImportAction.SKIP,
            resolution=ResolutionCode.NEEDS_REVIEW,
            note=f"hard_duplicate_input primary_square_customer_id={hard_info.primary_external_id}",
        )

    if mapping is not None:
        return _existing_mapping_decision(identity, mapping, snapshot)

    outcome = resolve_auto_link(identity, index, config=cfg)
    if isinstance(outcome, Ambiguous):
        if cfg.strict:
            log.warning("Ambiguous auto-link for %s: %s", identity.external_id, outcome.note)
        return _decision(
            identity,
            state=DecisionState.NEEDS_REVIEW_AMBIGUOUS,
            action=ImportAction.SKIP,
            resolution=ResolutionCode.NEEDS_REVIEW,
            note=outcome.note,
            error_kind=ErrorKind.AMBIGUOUS_MATCH,
            is_error=cfg.strict,
        )
    if isinstance(outcome, IneligibleExistingMapping):
        return _decision(
            identity,
            state=DecisionState.NEEDS_REVIEW_INELIGIBLE,
            action=ImportAction.SKIP,
            resolution=ResolutionCode.NEEDS_REVIEW,
            note=outcome.note,
            matched_client_id=outcome.client_id,
            error_kind=ErrorKind.INELIGIBLE_CANDIDATE,
        )
    if isinstance(outcome, Linked):
        client = index.clients[outcome.client_id]
        person_id = client.primary_contact_person_id if identity.should_create_person else None
        return _decision(
            identity,
            state=DecisionState.LINK_EXISTING,
            action=ImportAction.LINK,
            resolution=outcome.match.resolution,
            note=outcome.note,
            matched_client_id=outcome.client_id,
            matched_person_id=person_id,
        )

    log.debug("No auto-link for %s: %s", identity.external_id, outcome.note)
    return _decision(
        identity,
        state=DecisionState.INSERT_NEW,
        action=ImportAction.INSERT,
        resolution=ResolutionCode.INSERTED_NEW,
        note="created new client/person",
    )


def _existing_mapping_decision(
    identity: CustomerIdentity,
    mapping: ExternalMapping,
    snapshot: ClientSnapshot,
) -> ImportDecision:
    if mapping.client_id is None or not mapping.client_id.strip():
        note = "integration row missing client_id"
    elif snapshot.client_for(mapping.client_id) is None:
        note = "integration maps to missing client"
    else:
        return _decision(
            identity,
            state=DecisionState.UPDATE_EXISTING_MAPPING,
            action=ImportAction.UPDATE,
            resolution=ResolutionCode.EXISTING_SQUARE_CUSTOMER_ID,
            note="updated existing mapping",
            matched_client_id=mapping.client_id,
            matched_person_id=mapping.person_id,
        )

    log.warning("Broken mapping for %s: %s", identity.external_id, note)
    return _decision(
        identity,
        state=DecisionState.BROKEN_EXISTING_MAPPING,
        action=ImportAction.SKIP,
        resolution=ResolutionCode.ERROR,
        note=note,
        matched_client_id=mapping.client_id or None,
        error_kind=ErrorKind.BROKEN_EXISTING_MAPPING,
        is_error=True,
    )


def _decision(
    identity: CustomerIdentity,
    *,
    state: DecisionState,
    action: ImportAction,
    resolution: ResolutionCode,
    note: str,
    matched_client_id: str | None = None,
    matched_person_id: str | None = None,
    error_kind: ErrorKind | None = None,
    is_error: bool = False,
) -> ImportDecision:
    return ImportDecision(
        external_id=identity.external_id,
        display_name=identity.display_name,
        primary_email=identity.primary_email,
        primary_phone=identity.primary_phone,
        entity_kind=identity.entity_kind,
        classification_reason=identity.classification_reason,
        source=identity.source,
        state=state,
        action=action,
        resolution=resolution,
        note=note,
        matched_client_id=matched_client_id,
        matched_person_id=matched_person_id,
        should_create_person=identity.should_create_person,
        error_kind=error_kind,
        is_error=is_error,
    )
