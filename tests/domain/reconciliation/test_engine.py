from __future__ import annotations

from typing import TYPE_CHECKING

from squarelink.config.matching import AutoLinkTier, MatchingConfig
from squarelink.domain.model import ClientSnapshot
from squarelink.domain.reconciliation import (
    DecisionState,
    ErrorKind,
    ImportAction,
    ReconciliationEngine,
    ResolutionCode,
)
from tests.helpers.customers import make_client, make_row, make_snapshot

if TYPE_CHECKING:
    from collections.abc import Iterable

    from squarelink.domain.model import CustomerIdentity, CustomerRow


class RecordingSnapshotSource:
    def __init__(self, snapshot: ClientSnapshot) -> None:
        self.snapshot = snapshot
        self.calls: list[tuple[list[str], AutoLinkTier]] = []

    def load(self, identities: Iterable[CustomerIdentity], tier: AutoLinkTier) -> ClientSnapshot:
        self.calls.append(([identity.external_id for identity in identities], tier))
        return self.snapshot


def _rows() -> list[CustomerRow]:
    return [
        make_row("A", row_number=2, first_name="Jane", last_name="Doe", email_address="x@y.com"),
        make_row("B", row_number=3, first_name="Janie", last_name="Doe", email_address="X@Y.com"),
        make_row("C", row_number=4, nickname="Kappa Alpha Theta Chapter"),
        make_row("D", row_number=5, first_name="Sam", phone_number="555-0100"),
    ]


def test_reconcile_produces_one_decision_per_identity_in_row_order() -> None:
    snapshot = make_snapshot(make_client("K"), phones={"5550100": {"K"}})

    result = ReconciliationEngine().reconcile(_rows(), snapshot)

    assert [decision.external_id for decision in result.decisions] == ["A", "B", "C", "D"]
    assert [decision.state for decision in result.decisions] == [
        DecisionState.INSERT_NEW,
        DecisionState.SKIP_NON_PRIMARY_DUPLICATE,
        DecisionState.INSERT_NEW,
        DecisionState.LINK_EXISTING,
    ]
    assert result.hard_duplicates.clusters() == [("A", "B")]


def test_stats_follow_decisions() -> None:
    snapshot = make_snapshot(make_client("K"), phones={"5550100": {"K"}})

    stats = ReconciliationEngine().reconcile(_rows(), snapshot).stats

    assert stats.total_rows == 4
    assert stats.organizations == 1
    assert stats.individuals == 3
    assert stats.inserted == 2
    assert stats.linked == 1
    assert stats.skipped == 1
    assert stats.needs_review == 1
    assert stats.auto_linked_by_phone == 1
    assert stats.hard_duplicate_rows == 2
    assert stats.errors == 0


def test_reconcile_is_deterministic_under_input_order() -> None:
    snapshot = make_snapshot(make_client("K"), phones={"5550100": {"K"}})
    engine = ReconciliationEngine()

    forward = engine.reconcile(_rows(), snapshot)
    backward = engine.reconcile(list(reversed(_rows())), snapshot)

    assert forward.decisions == backward.decisions
    assert forward.hard_duplicates == backward.hard_duplicates
    assert forward.soft_duplicates == backward.soft_duplicates


def test_rows_without_external_id_are_rejected_not_decided() -> None:
    rows = [make_row("  ", row_number=2, first_name="Ghost"), make_row("A", row_number=3)]

    result = ReconciliationEngine().reconcile(rows, ClientSnapshot())

    assert [decision.external_id for decision in result.decisions] == ["A"]
    assert len(result.rejections) == 1
    assert result.rejections[0].source.row_number == 2
    assert result.rejections[0].error_kind is ErrorKind.MISSING_IDENTIFIER
    assert result.stats.missing_identifiers == 1
    assert result.stats.errors == 1


def test_repeated_external_id_keeps_first_occurrence() -> None:
    rows = [
        make_row("A", row_number=2, first_name="First"),
        make_row("A", row_number=3, first_name="Second"),
    ]

    result = ReconciliationEngine().reconcile(rows, ClientSnapshot())

    assert len(result.decisions) == 1
    assert result.decisions[0].display_name == "First"
    assert result.stats.duplicate_external_ids_skipped == 1
    assert result.hard_duplicates.row_count == 0


def test_strict_mode_counts_ambiguous_matches_as_errors() -> None:
    rows = [make_row("A", email_address="x@y.com")]
    snapshot = make_snapshot(make_client("K1"), make_client("K2"), emails={"x@y.com": {"K1", "K2"}})

    lenient = ReconciliationEngine().reconcile(rows, snapshot)
    strict = ReconciliationEngine(config=MatchingConfig(strict=True)).reconcile(rows, snapshot)

    assert lenient.stats.errors == 0
    assert lenient.stats.needs_review == 1
    assert strict.stats.errors == 1
    assert strict.decisions[0].action is ImportAction.SKIP


def test_snapshot_source_is_loaded_with_built_identities_and_tier() -> None:
    source = RecordingSnapshotSource(make_snapshot())
    config = MatchingConfig(auto_link_tier=AutoLinkTier.EMAIL_ONLY)

    ReconciliationEngine(config=config).reconcile(_rows(), source)

    assert source.calls == [(["A", "B", "C", "D"], AutoLinkTier.EMAIL_ONLY)]


def test_prepare_computes_duplicates_before_decisions() -> None:
    batch = ReconciliationEngine().prepare(_rows(), ClientSnapshot())

    assert batch.hard_duplicates.row_count == 2
    assert batch.stats.inserted == 0

    decisions = list(batch.iter_decisions())

    assert len(decisions) == 4
    assert batch.stats.inserted == 3


def test_identity_lookup_and_linked_resolution() -> None:
    snapshot = make_snapshot(make_client("K"), phones={"5550100": {"K"}})

    result = ReconciliationEngine().reconcile(_rows(), snapshot)

    identity = result.identity_for("D")
    assert identity is not None
    assert identity.primary_phone == "5550100"
    assert result.identity_for("missing") is None
    assert result.decisions[3].resolution is ResolutionCode.AUTO_LINKED_BY_PHONE
