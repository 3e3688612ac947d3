"""Intra-batch duplicate detection.

Responsibilities of this stage:
- cluster rows that certainly describe the same customer (shared email/phone)
- elect one primary row per cluster
- flag rows that only look alike (name+location, display-name tokens)
- avoid persistence lookups; both detectors read the full identity list

Both detectors need the fully materialized batch: a later row can connect two
earlier clusters and change which row is primary.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

from squarelink.config.matching import MatchingConfig
from squarelink.domain.model import EntityKind

from .contracts import HardDuplicateInfo, SoftDuplicateInfo
from .graph import DisjointSet
from .normalize import tokenize

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from squarelink.domain.model import CustomerIdentity

log = logging.getLogger(__name__)

DuplicateGroup: TypeAlias = tuple[str, tuple[str, ...]]


@dataclass(slots=True)
class HardDuplicates:
    """Hard-duplicate findings for one batch.

    Only external ids that belong to a cluster of two or more rows have an
    entry in ``by_external_id``.
    """

    by_external_id: dict[str, HardDuplicateInfo] = field(
        default_factory=dict[str, HardDuplicateInfo]
    )
    duplicate_emails: tuple[DuplicateGroup, ...] = ()
    duplicate_phones: tuple[DuplicateGroup, ...] = ()

    @property
    def row_count(self) -> int:
        return len(self.by_external_id)

    def info_for(self, external_id: str) -> HardDuplicateInfo | None:
        return self.by_external_id.get(external_id)

    def clusters(self) -> list[tuple[str, ...]]:
        """Clusters as sorted id tuples, primary-ordered."""

        members: dict[str, list[str]] = defaultdict(list)
        for external_id, info in self.by_external_id.items():
            members[info.primary_external_id].append(external_id)
        return [tuple(sorted(ids)) for _primary, ids in sorted(members.items())]


@dataclass(slots=True)
class SoftDuplicates:
    by_external_id: dict[str, SoftDuplicateInfo] = field(
        default_factory=dict[str, SoftDuplicateInfo]
    )

    @property
    def row_count(self) -> int:
        return len(self.by_external_id)

    def info_for(self, external_id: str) -> SoftDuplicateInfo | None:
        return self.by_external_id.get(external_id)


def detect_hard_duplicates(identities: Sequence[CustomerIdentity]) -> HardDuplicates:
    """Cluster rows sharing a normalized email or phone (transitively)."""

    ids_by_email = _ids_by_value(identities, lambda identity: identity.normalized_emails)
    ids_by_phone = _ids_by_value(identities, lambda identity: identity.normalized_phones)
    email_groups = _duplicate_groups(ids_by_email)
    phone_groups = _duplicate_groups(ids_by_phone)

    forest: DisjointSet[str] = DisjointSet()
    for _value, ids in (*email_groups, *phone_groups):
        forest.union_all(ids)

    emails_by_id = _values_by_id(email_groups)
    phones_by_id = _values_by_id(phone_groups)
    position = _positions(identities)

    components = forest.components()
    by_external_id: dict[str, HardDuplicateInfo] = {}
    for component in components:
        primary = min(component, key=lambda external_id: (position[external_id], external_id))
        for external_id in sorted(component):
            by_external_id[external_id] = HardDuplicateInfo(
                is_primary=external_id == primary,
                primary_external_id=primary,
                duplicate_emails=tuple(sorted(emails_by_id.get(external_id, ()))),
                duplicate_phones=tuple(sorted(phones_by_id.get(external_id, ()))),
            )

    if by_external_id:
        log.info(
            "Hard duplicates: rows=%s clusters=%s email_groups=%s phone_groups=%s",
            len(by_external_id),
            len(components),
            len(email_groups),
            len(phone_groups),
        )
    return HardDuplicates(
        by_external_id=dict(sorted(by_external_id.items())),
        duplicate_emails=email_groups,
        duplicate_phones=phone_groups,
    )


def detect_soft_duplicates(
    identities: Sequence[CustomerIdentity],
    *,
    config: MatchingConfig | None = None,
) -> SoftDuplicates:
    """Flag rows that plausibly describe the same customer; never merges."""

    cfg = config or MatchingConfig()
    groups: dict[str, set[str]] = defaultdict(set)

    for identity in identities:
        location_key = name_location_key(identity)
        if location_key is not None:
            groups[location_key].add(identity.external_id)

        signature = display_token_signature(identity.display_name, config=cfg)
        if signature is not None:
            groups[f"display_tokens:{signature}"].add(identity.external_id)

    reasons_by_id: dict[str, set[str]] = defaultdict(set)
    for reason, ids in groups.items():
        if len(ids) < 2:
            continue
        for external_id in ids:
            reasons_by_id[external_id].add(reason)

    if reasons_by_id:
        log.info("Soft duplicates: rows=%s", len(reasons_by_id))
    return SoftDuplicates(
        by_external_id={
            external_id: SoftDuplicateInfo(reasons=tuple(sorted(reasons)))
            for external_id, reasons in sorted(reasons_by_id.items())
        }
    )


def name_location_key(identity: CustomerIdentity) -> str | None:
    """Grouping key for the name+location rule, or ``None`` when it does not apply."""

    if identity.entity_kind is not EntityKind.INDIVIDUAL or not identity.person_name_key:
        return None
    if identity.postal_key:
        return f"name_postal:{identity.person_name_key}|{identity.postal_key}"
    if identity.city_key and identity.state_key:
        return (
            f"name_city_state:{identity.person_name_key}|{identity.city_key}|{identity.state_key}"
        )
    return None


def display_token_signature(display_name: str, *, config: MatchingConfig) -> str | None:
    """Order-independent token signature; ``None`` when fewer than two tokens survive.

    ``"Acme Photo Studio LLC"`` and ``"photos, acme"`` share the signature
    ``"acme photo"``: indicator tokens are dropped and ``photos`` is singularized.
    Punctuation separates tokens, so ``"Smith-Jones"`` counts as ``smith`` and ``jone``.
    """

    tokens: set[str] = set()
    for token in tokenize(display_name.lower()):
        if len(token) <= 1:
            continue
        if config.organization_indicators.contains(token):
            continue
        if token.endswith("s") and len(token) > 3:
            token = token[:-1]
        tokens.add(token)

    if len(tokens) < 2:
        return None
    return " ".join(sorted(tokens))


def _ids_by_value(
    identities: Iterable[CustomerIdentity],
    values_of: Callable[[CustomerIdentity], Iterable[str]],
) -> dict[str, set[str]]:
    ids_by_value: dict[str, set[str]] = defaultdict(set)
    for identity in identities:
        for value in values_of(identity):
            ids_by_value[value].add(identity.external_id)
    return ids_by_value


def _duplicate_groups(ids_by_value: dict[str, set[str]]) -> tuple[DuplicateGroup, ...]:
    groups = [(value, tuple(sorted(ids))) for value, ids in ids_by_value.items() if len(ids) > 1]
    groups.sort(key=lambda group: (-len(group[1]), group[0]))
    return tuple(groups)


def _values_by_id(groups: Iterable[DuplicateGroup]) -> dict[str, set[str]]:
    values_by_id: dict[str, set[str]] = defaultdict(set)
    for value, ids in groups:
        for external_id in ids:
            values_by_id[external_id].add(value)
    return values_by_id


def _positions(identities: Iterable[CustomerIdentity]) -> dict[str, int]:
    position: dict[str, int] = {}
    for identity in identities:
        row_number = identity.source.row_number
        current = position.get(identity.external_id)
        if current is None or row_number < current:
            position[identity.external_id] = row_number
    return position

