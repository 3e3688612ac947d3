from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest

from squarelink.config.matching import AutoLinkTier, MatchingConfig
from squarelink.domain.reconciliation import (
    Ambiguous,
    AutoLinkMatch,
    IneligibleExistingMapping,
    Linked,
    NoAutoLink,
)
from squarelink.domain.reconciliation.resolve import (
    AutoLinkIndex,
    completeness_score,
    looks_like_placeholder,
    resolve_auto_link,
)
from tests.helpers.customers import make_client, make_identity, make_snapshot

if TYPE_CHECKING:
    from squarelink.domain.model import ExistingClient


def _index(*clients: ExistingClient, **kwargs: Any) -> AutoLinkIndex:
    return AutoLinkIndex.from_snapshot(make_snapshot(*clients, **kwargs))


def test_single_eligible_email_candidate_links() -> None:
    identity = make_identity("S1", email_address="x@y.com")
    index = _index(make_client("K"), emails={"x@y.com": {"K"}})

    outcome = resolve_auto_link(identity, index)

    assert outcome == Linked(
        client_id="K",
        match=AutoLinkMatch.EMAIL,
        note="linked by auto_linked_by_email",
    )


def test_client_with_other_mapping_is_ineligible() -> None:
    identity = make_identity("S1", email_address="x@y.com")
    index = _index(
        make_client("K"),
        emails={"x@y.com": {"K"}},
        external_ids={"K": "OTHER"},
    )

    outcome = resolve_auto_link(identity, index)

    assert isinstance(outcome, IneligibleExistingMapping)
    assert outcome.client_id == "K"
    assert outcome.existing_external_id == "OTHER"
    assert outcome.note == "match found but client already has square_customer_id=OTHER"


def test_blank_existing_mapping_counts_as_unmapped() -> None:
    identity = make_identity("S1", email_address="x@y.com")
    index = _index(make_client("K"), emails={"x@y.com": {"K"}}, external_ids={"K": "  "})

    assert isinstance(resolve_auto_link(identity, index), Linked)


def test_ineligible_candidates_are_dropped_before_ranking() -> None:
    identity = make_identity("S1", email_address="x@y.com")
    index = _index(
        make_client("K1"),
        make_client("K2"),
        emails={"x@y.com": {"K1", "K2"}},
        external_ids={"K1": "OTHER"},
    )

    outcome = resolve_auto_link(identity, index)

    assert isinstance(outcome, Linked)
    assert outcome.client_id == "K2"


def test_candidates_missing_from_snapshot_are_not_eligible() -> None:
    identity = make_identity("S1", email_address="x@y.com")
    index = _index(emails={"x@y.com": {"GONE"}})

    outcome = resolve_auto_link(identity, index)

    assert outcome == NoAutoLink(note="no eligible clients found", match=AutoLinkMatch.EMAIL)


def test_more_complete_client_wins() -> None:
    identity = make_identity("S1", email_address="x@y.com")
    index = _index(
        make_client("K1", display_name="Unknown"),
        make_client("K2", display_name="Jane Doe", primary_contact_person_id="P2"),
        emails={"x@y.com": {"K1", "K2"}},
    )

    outcome = resolve_auto_link(identity, index)

    assert outcome == Linked(
        client_id="K2",
        match=AutoLinkMatch.EMAIL,
        note="linked to client_id=K2",
    )


def test_recency_breaks_equal_completeness() -> None:
    identity = make_identity("S1", phone_number="555-0100")
    index = _index(
        make_client("K1", updated_at=datetime(2024, 3, 1, tzinfo=UTC)),
        make_client("K2", updated_at=datetime(2024, 6, 1)),
        phones={"5550100": {"K1", "K2"}},
    )

    outcome = resolve_auto_link(identity, index)

    assert isinstance(outcome, Linked)
    assert outcome.client_id == "K2"
    assert outcome.match is AutoLinkMatch.PHONE


def test_full_tie_is_ambiguous() -> None:
    identity = make_identity("S1", email_address="x@y.com")
    index = _index(
        make_client("K2"),
        make_client("K1"),
        emails={"x@y.com": {"K1", "K2"}},
    )

    outcome = resolve_auto_link(identity, index)

    assert isinstance(outcome, Ambiguous)
    assert outcome.candidates == ("K1", "K2")
    assert outcome.note == "ambiguous match for S1 candidates=K1,K2"


def test_ambiguous_note_lists_at_most_five_candidates() -> None:
    identity = make_identity("S1", email_address="x@y.com")
    ids = [f"K{n}" for n in range(7)]
    index = _index(*(make_client(cid) for cid in ids), emails={"x@y.com": set(ids)})

    outcome = resolve_auto_link(identity, index)

    assert isinstance(outcome, Ambiguous)
    assert len(outcome.candidates) == 7
    assert outcome.note.endswith("candidates=K0,K1,K2,K3,K4")


def test_email_candidates_suppress_phone_lookup() -> None:
    identity = make_identity("S1", email_address="x@y.com", phone_number="5550100")
    index = _index(
        make_client("KE"),
        make_client("KP"),
        emails={"x@y.com": {"KE"}},
        phones={"5550100": {"KP"}},
        external_ids={"KE": "OTHER"},
    )

    outcome = resolve_auto_link(identity, index)

    assert isinstance(outcome, IneligibleExistingMapping)
    assert outcome.client_id == "KE"


@pytest.mark.parametrize(
    ("tier", "expected"),
    [
        (AutoLinkTier.NONE, None),
        (AutoLinkTier.EMAIL_ONLY, "KE"),
        (AutoLinkTier.PHONE_ONLY, "KP"),
        (AutoLinkTier.EMAIL_OR_PHONE, "KE"),
    ],
)
def test_tier_controls_signals(tier: AutoLinkTier, expected: str | None) -> None:
    identity = make_identity("S1", email_address="x@y.com", phone_number="5550100")
    index = _index(
        make_client("KE"),
        make_client("KP"),
        emails={"x@y.com": {"KE"}},
        phones={"5550100": {"KP"}},
    )

    outcome = resolve_auto_link(identity, index, config=MatchingConfig(auto_link_tier=tier))

    if expected is None:
        assert outcome == NoAutoLink(note="auto-link disabled")
    else:
        assert isinstance(outcome, Linked)
        assert outcome.client_id == expected


def test_phone_used_when_email_has_no_candidates() -> None:
    identity = make_identity("S1", email_address="new@y.com", phone_number="5550100")
    index = _index(make_client("KP"), phones={"5550100": {"KP"}})

    outcome = resolve_auto_link(identity, index)

    assert isinstance(outcome, Linked)
    assert outcome.match is AutoLinkMatch.PHONE


def test_no_candidates() -> None:
    identity = make_identity("S1", email_address="new@y.com")

    outcome = resolve_auto_link(identity, _index())

    assert outcome == NoAutoLink(note="no matching email/phone found")


def test_completeness_score() -> None:
    bare = make_client("K", display_name="square_K")
    full = make_client(
        "K",
        display_name="Jane Doe",
        primary_contact_person_id="P",
        account_owner_person_id="O",
    )

    assert completeness_score(bare) == 0
    assert completeness_score(full) == 4


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, True),
        ("  ", True),
        ("unknown", True),
        ("Customer", True),
        ("SQUARE_abc", True),
        ("Jane Doe", False),
    ],
)
def test_looks_like_placeholder(value: str | None, expected: bool) -> None:
    assert looks_like_placeholder(value) is expected
