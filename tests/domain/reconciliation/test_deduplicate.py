from __future__ import annotations

from squarelink.config.matching import MatchingConfig
from squarelink.domain.reconciliation import HardDuplicateInfo
from squarelink.domain.reconciliation.deduplicate import (
    detect_hard_duplicates,
    detect_soft_duplicates,
    display_token_signature,
)
from tests.helpers.customers import make_identities, make_identity


def test_shared_email_clusters_rows_and_first_row_is_primary() -> None:
    identities = make_identities(
        {"external_id": "A", "email_address": "x@y.com"},
        {"external_id": "B", "email_address": "X@Y.com"},
    )

    hard = detect_hard_duplicates(identities)

    assert hard.info_for("A") == HardDuplicateInfo(
        is_primary=True,
        primary_external_id="A",
        duplicate_emails=("x@y.com",),
    )
    assert hard.info_for("B") == HardDuplicateInfo(
        is_primary=False,
        primary_external_id="A",
        duplicate_emails=("x@y.com",),
    )
    assert hard.duplicate_emails == (("x@y.com", ("A", "B")),)
    assert hard.duplicate_phones == ()


def test_clusters_are_transitive_across_email_and_phone() -> None:
    identities = make_identities(
        {"external_id": "R1", "email_address": "one@x.com"},
        {"external_id": "R2", "email_address": "one@x.com", "phone_number": "555-0100"},
        {"external_id": "R3", "phone_number": "(555) 0100"},
        {"external_id": "R4", "email_address": "solo@x.com"},
    )

    hard = detect_hard_duplicates(identities)

    assert hard.clusters() == [("R1", "R2", "R3")]
    assert {hard.by_external_id[i].primary_external_id for i in ("R1", "R2", "R3")} == {"R1"}
    assert hard.info_for("R4") is None
    assert hard.row_count == 3
    assert hard.by_external_id["R2"].duplicate_phones == ("5550100",)


def test_late_row_merges_two_clusters_and_keeps_earliest_primary() -> None:
    identities = make_identities(
        {"external_id": "Z", "email_address": "a@x.com"},
        {"external_id": "Y", "email_address": "a@x.com"},
        {"external_id": "X", "phone_number": "5550199"},
        {"external_id": "W", "phone_number": "5550199"},
        {"external_id": "V", "email_address": "a@x.com", "phone_number": "5550199"},
    )

    hard = detect_hard_duplicates(identities)

    assert hard.clusters() == [("V", "W", "X", "Y", "Z")]
    assert all(info.primary_external_id == "Z" for info in hard.by_external_id.values())


def test_primary_is_stable_under_input_permutation() -> None:
    identities = make_identities(
        {"external_id": "B", "email_address": "x@y.com"},
        {"external_id": "A", "email_address": "x@y.com"},
        {"external_id": "C", "email_address": "x@y.com"},
    )

    forward = detect_hard_duplicates(identities)
    backward = detect_hard_duplicates(list(reversed(identities)))

    assert forward == backward
    assert forward.by_external_id["A"].primary_external_id == "B"


def test_same_row_number_breaks_ties_on_external_id() -> None:
    identities = [
        make_identity("K2", row_number=2, email_address="t@x.com"),
        make_identity("K1", row_number=2, email_address="t@x.com"),
    ]

    hard = detect_hard_duplicates(identities)

    assert hard.by_external_id["K1"].is_primary
    assert not hard.by_external_id["K2"].is_primary


def test_duplicate_groups_are_ordered_by_size_then_value() -> None:
    identities = make_identities(
        {"external_id": "1", "email_address": "b@x.com"},
        {"external_id": "2", "email_address": "b@x.com"},
        {"external_id": "3", "email_address": "a@x.com"},
        {"external_id": "4", "email_address": "a@x.com"},
        {"external_id": "5", "email_address": "c@x.com"},
        {"external_id": "6", "email_address": "c@x.com"},
        {"external_id": "7", "email_address": "c@x.com"},
    )

    hard = detect_hard_duplicates(identities)

    assert [value for value, _ids in hard.duplicate_emails] == ["c@x.com", "a@x.com", "b@x.com"]


def test_soft_duplicates_by_name_and_postal_code() -> None:
    identities = make_identities(
        {"external_id": "P1", "first_name": "Jane", "last_name": "Doe", "postal_code": "90210"},
        {"external_id": "P2", "first_name": "jane", "last_name": "DOE", "postal_code": "90210"},
    )

    soft = detect_soft_duplicates(identities)

    info = soft.info_for("P1")
    assert info is not None
    assert "name_postal:jane doe|90210" in info.reasons
    assert soft.info_for("P2") == info


def test_postal_suffix_keeps_rows_out_of_the_name_postal_group() -> None:
    identities = make_identities(
        {"external_id": "C", "first_name": "Jane", "last_name": "Doe", "postal_code": "90210"},
        {
            "external_id": "D",
            "first_name": "jane ",
            "last_name": " doe",
            "postal_code": "90210-1234",
        },
    )

    soft = detect_soft_duplicates(identities)

    info = soft.info_for("C")
    assert info is not None
    assert not any(reason.startswith("name_postal:") for reason in info.reasons)
    assert info.reasons == ("display_tokens:doe jane",)


def test_soft_duplicates_by_name_city_state_without_postal() -> None:
    identities = make_identities(
        {
            "external_id": "S1",
            "first_name": "Ann",
            "last_name": "Lee",
            "city": "Austin",
            "state": "tx",
        },
        {
            "external_id": "S2",
            "first_name": "Ann",
            "last_name": "Lee",
            "city": "AUSTIN",
            "state": "TX",
        },
    )

    soft = detect_soft_duplicates(identities)

    info = soft.info_for("S2")
    assert info is not None
    assert "name_city_state:ann lee|austin|TX" in info.reasons


def test_display_tokens_ignore_indicators_order_and_plurals() -> None:
    config = MatchingConfig()

    assert display_token_signature("Acme Photo Studio LLC", config=config) == "acme photo"
    assert display_token_signature("photos, acme", config=config) == "acme photo"
    assert display_token_signature("Acme LLC", config=config) is None


def test_display_tokens_split_on_punctuation() -> None:
    config = MatchingConfig()

    hyphenated = display_token_signature("Smith-Jones Photography", config=config)

    assert hyphenated == "jone photography smith"
    assert hyphenated == display_token_signature("Jones Smith Photography", config=config)
    assert display_token_signature("O'Neil & Sons", config=config) == "neil son"


def test_hyphenated_and_reordered_company_names_are_soft_duplicates() -> None:
    identities = make_identities(
        {"external_id": "H1", "company_name": "Smith-Jones Photography"},
        {"external_id": "H2", "company_name": "Jones Smith Photography"},
    )

    soft = detect_soft_duplicates(identities)

    for external_id in ("H1", "H2"):
        info = soft.info_for(external_id)
        assert info is not None
        assert info.reasons == ("display_tokens:jone photography smith",)


def test_soft_detector_never_flags_single_rows() -> None:
    identities = make_identities(
        {"external_id": "U1", "first_name": "Solo", "last_name": "Person", "postal_code": "1"},
        {"external_id": "U2", "company_name": "Other Thing"},
    )

    soft = detect_soft_duplicates(identities)

    assert soft.row_count == 0
