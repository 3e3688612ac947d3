"""Auto-link resolution against existing registry clients.

Responsibilities of this stage:
- look up candidate clients by normalized email/phone for the active tier
- drop clients already mapped to another source customer
- pick one candidate by completeness and recency, or report ambiguity

Out of scope for this stage:
- existing-mapping lookups by external id (see ``policy``)
- any mutation of registry state
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC
from typing import TYPE_CHECKING

from squarelink.config.matching import AutoLinkTier, MatchingConfig

from .contracts import (
    Ambiguous,
    AutoLinkMatch,
    IneligibleExistingMapping,
    Linked,
    NoAutoLink,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from squarelink.domain.model import ClientSnapshot, CustomerIdentity, ExistingClient

    from .contracts import AutoLinkResult

log = logging.getLogger(__name__)

_MAX_AMBIGUOUS_CANDIDATES_IN_NOTE = 5


@dataclass(frozen=True, slots=True)
class AutoLinkIndex:
    """Batch-scoped lookup tables built once from the client snapshot."""

    client_ids_by_email: Mapping[str, frozenset[str]] = field(default_factory=dict)
    client_ids_by_phone: Mapping[str, frozenset[str]] = field(default_factory=dict)
    clients: Mapping[str, ExistingClient] = field(default_factory=dict)
    external_id_by_client_id: Mapping[str, str | None] = field(default_factory=dict)

    @classmethod
    def from_snapshot(cls, snapshot: ClientSnapshot) -> AutoLinkIndex:
        return cls(
            client_ids_by_email=dict(snapshot.client_ids_by_email),
            client_ids_by_phone=dict(snapshot.client_ids_by_phone),
            clients=dict(snapshot.clients),
            external_id_by_client_id=dict(snapshot.external_id_by_client_id),
        )

    def existing_external_id(self, client_id: str) -> str | None:
        value = self.external_id_by_client_id.get(client_id)
        if value is None or not value.strip():
            return None
        return value

    def is_eligible(self, client_id: str) -> bool:
        return client_id in self.clients and self.existing_external_id(client_id) is None


def resolve_auto_link(
    identity: CustomerIdentity,
    index: AutoLinkIndex,
    *,
    config: MatchingConfig | None = None,
) -> AutoLinkResult:
    """Decide whether ``identity`` links to an existing client.

    Email candidates win over phone candidates under ``email_or_phone``; phone
    is consulted only when no email candidate exists at all.
    """

    cfg = config or MatchingConfig()
    tier = cfg.auto_link_tier
    if tier is AutoLinkTier.NONE:
        return NoAutoLink(note="auto-link disabled")

    if tier.uses_email:
        email_candidates = _candidates(identity.normalized_emails, index.client_ids_by_email)
        if email_candidates:
            return _select(identity, email_candidates, index, AutoLinkMatch.EMAIL, cfg)

    if tier.uses_phone:
        phone_candidates = _candidates(identity.normalized_phones, index.client_ids_by_phone)
        if phone_candidates:
            return _select(identity, phone_candidates, index, AutoLinkMatch.PHONE, cfg)

    return NoAutoLink(note="no matching email/phone found")


def completeness_score(client: ExistingClient, *, config: MatchingConfig | None = None) -> int:
    cfg = config or MatchingConfig()
    score = 0
    if not looks_like_placeholder(client.display_name, config=cfg):
        score += 1
    if client.primary_contact_person_id is not None:
        score += 2
    if client.account_owner_person_id is not None:
        score += 1
    return score


def looks_like_placeholder(value: str | None, *, config: MatchingConfig | None = None) -> bool:
    """Whether a display name is generic (``Unknown``, ``square_<id>``, blank, ...)."""

    cfg = config or MatchingConfig()
    if value is None or not value.strip():
        return True
    normalized = value.strip()
    if cfg.placeholder_names.contains(normalized):
        return True
    return normalized.lower().startswith(cfg.placeholder_prefix.lower())


def _candidates(values: Iterable[str], ids_by_value: Mapping[str, frozenset[str]]) -> set[str]:
    candidates: set[str] = set()
    for value in values:
        candidates.update(ids_by_value.get(value, ()))
    return candidates


def _select(
    identity: CustomerIdentity,
    candidates: set[str],
    index: AutoLinkIndex,
    match: AutoLinkMatch,
    config: MatchingConfig,
) -> AutoLinkResult:
    eligible = sorted(client_id for client_id in candidates if index.is_eligible(client_id))

    if not eligible:
        ineligible = sorted(
            client_id for client_id in candidates if index.existing_external_id(client_id)
        )
        if ineligible:
            client_id = ineligible[0]
            existing = index.existing_external_id(client_id) or ""
            return IneligibleExistingMapping(
                client_id=client_id,
                existing_external_id=existing,
                match=match,
                note=f"match found but client already has square_customer_id={existing}",
            )
        log.debug(
            "Auto-link candidates for %s missing from snapshot: %s",
            identity.external_id,
            sorted(candidates),
        )
        return NoAutoLink(note="no eligible clients found", match=match)

    if len(eligible) == 1:
        return Linked(
            client_id=eligible[0],
            match=match,
            note=f"linked by {match.resolution}",
        )

    ranked = sorted(eligible, key=lambda client_id: _rank_key(index.clients[client_id], config))
    best, second = ranked[0], ranked[1]
    if _tie_key(index.clients[best], config) == _tie_key(index.clients[second], config):
        top = ranked[:_MAX_AMBIGUOUS_CANDIDATES_IN_NOTE]
        return Ambiguous(
            candidates=tuple(ranked),
            match=match,
            note=f"ambiguous match for {identity.external_id} candidates={','.join(top)}",
        )

    return Linked(
        client_id=best,
        match=match,
        note=f"linked to client_id={best}",
    )


def _tie_key(client: ExistingClient, config: MatchingConfig) -> tuple[int, float]:
    return completeness_score(client, config=config), _recency_timestamp(client)


def _rank_key(client: ExistingClient, config: MatchingConfig) -> tuple[int, float, str]:
    score, recency = _tie_key(client, config)
    return -score, -recency, client.client_id


def _recency_timestamp(client: ExistingClient) -> float:
    recency = client.recency
    if recency is None:
        return float("-inf")
    if recency.tzinfo is None:
        recency = recency.replace(tzinfo=UTC)
    return recency.timestamp()
