"""CSV audit reports and the operator summary for one reconciled batch.

Every report is a projection of the same decision stream:

- ``customers-duplicates-hard.csv``: rows in a hard-duplicate cluster
- ``customers-duplicates-soft.csv``: rows with soft-duplicate reasons
- ``customers-needs-review.csv``: resolution ``needs_review*`` or ``error``
- ``customers-applied.csv``: everything else
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Final

from squarelink.domain.reconciliation.contracts import ResolutionCode

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence
    from pathlib import Path

    from squarelink.domain.reconciliation.contracts import ImportDecision
    from squarelink.domain.reconciliation.deduplicate import DuplicateGroup
    from squarelink.domain.reconciliation.engine import ReconciliationResult

log = logging.getLogger(__name__)

HARD_DUPLICATES_FILE: Final = "customers-duplicates-hard.csv"
SOFT_DUPLICATES_FILE: Final = "customers-duplicates-soft.csv"
NEEDS_REVIEW_FILE: Final = "customers-needs-review.csv"
APPLIED_FILE: Final = "customers-applied.csv"

REPORT_COLUMNS: Final[tuple[str, ...]] = (
    "square_customer_id",
    "display_name",
    "normalized_email",
    "normalized_phone",
    "proposed_client_type_key",
    "classification_reason",
    "proposed_action",
    "matched_client_id",
    "matched_person_id",
    "resolution",
    "notes",
    "source_file",
    "row_number",
)

_TOP_GROUPS: Final = 20
_MAX_IDS_PER_GROUP: Final = 10


@dataclass(frozen=True, slots=True)
class ReportRow:
    square_customer_id: str
    display_name: str
    normalized_email: str | None
    normalized_phone: str | None
    proposed_client_type_key: str
    classification_reason: str
    proposed_action: str
    matched_client_id: str | None
    matched_person_id: str | None
    resolution: str
    notes: str
    source_file: str
    row_number: int

    @classmethod
    def from_decision(cls, decision: ImportDecision) -> ReportRow:
        return cls(
            square_customer_id=decision.external_id,
            display_name=decision.display_name,
            normalized_email=decision.primary_email,
            normalized_phone=decision.primary_phone,
            proposed_client_type_key=decision.entity_kind.value,
            classification_reason=decision.classification_reason,
            proposed_action=decision.action.value,
            matched_client_id=decision.matched_client_id,
            matched_person_id=decision.matched_person_id,
            resolution=decision.resolution.value,
            notes=decision.note,
            source_file=decision.source.file_name,
            row_number=decision.source.row_number,
        )

    @property
    def needs_review(self) -> bool:
        return self.resolution.startswith("needs_review") or self.resolution == "error"

    def as_record(self) -> dict[str, str]:
        return {column: _cell(getattr(self, column)) for column in REPORT_COLUMNS}


@dataclass(frozen=True, slots=True)
class ReportPaths:
    hard_duplicates: Path
    soft_duplicates: Path
    needs_review: Path
    applied: Path

    def __iter__(self) -> Iterator[Path]:
        return iter((self.hard_duplicates, self.soft_duplicates, self.needs_review, self.applied))


def hard_duplicate_rows(result: ReconciliationResult) -> list[ReportRow]:
    rows: list[ReportRow] = []
    for decision in result.decisions:
        info = result.hard_duplicates.info_for(decision.external_id)
        if info is None:
            continue
        row = ReportRow.from_decision(decision)
        notes = (
            f"{row.notes}; hard_duplicate_primary={info.primary_external_id}; "
            f"dup_emails={'|'.join(info.duplicate_emails)}; "
            f"dup_phones={'|'.join(info.duplicate_phones)}"
        )
        rows.append(replace(row, notes=notes))
    return rows


def soft_duplicate_rows(result: ReconciliationResult) -> list[ReportRow]:
    rows: list[ReportRow] = []
    for decision in result.decisions:
        info = result.soft_duplicates.info_for(decision.external_id)
        if info is None:
            continue
        row = ReportRow.from_decision(decision)
        resolution = (
            ResolutionCode.NEEDS_REVIEW
            if decision.resolution is ResolutionCode.NEEDS_REVIEW
            else ResolutionCode.NEEDS_REVIEW_SOFT_DUPLICATE
        )
        notes = f"{row.notes}; soft_duplicate_reasons={'|'.join(info.reasons)}"
        rows.append(replace(row, resolution=resolution.value, notes=notes))
    return rows


def needs_review_rows(result: ReconciliationResult) -> list[ReportRow]:
    rows = (ReportRow.from_decision(decision) for decision in result.decisions)
    return [row for row in rows if row.needs_review]


def applied_rows(result: ReconciliationResult) -> list[ReportRow]:
    rows = (ReportRow.from_decision(decision) for decision in result.decisions)
    return [row for row in rows if not row.needs_review]


def write_reports(result: ReconciliationResult, report_dir: Path) -> ReportPaths:
    """Write all four reports into ``report_dir`` (created if missing)."""

    report_dir.mkdir(parents=True, exist_ok=True)
    paths = ReportPaths(
        hard_duplicates=report_dir / HARD_DUPLICATES_FILE,
        soft_duplicates=report_dir / SOFT_DUPLICATES_FILE,
        needs_review=report_dir / NEEDS_REVIEW_FILE,
        applied=report_dir / APPLIED_FILE,
    )
    _write_csv(paths.hard_duplicates, hard_duplicate_rows(result))
    _write_csv(paths.soft_duplicates, soft_duplicate_rows(result))
    _write_csv(paths.needs_review, needs_review_rows(result))
    _write_csv(paths.applied, applied_rows(result))
    log.info("Wrote customer reports to %s", report_dir)
    return paths


def summary_lines(result: ReconciliationResult, *, report_dir: Path | None = None) -> list[str]:
    stats = result.stats
    lines = [
        f"rows total={stats.total_rows} inserted={stats.inserted} updated={stats.updated} "
        f"linked={stats.linked} skipped={stats.skipped} needs_review={stats.needs_review} "
        f"errors={stats.errors}",
        f"classification organizations={stats.organizations} individuals={stats.individuals}",
        f"duplicates hard_rows={stats.hard_duplicate_rows} soft_rows={stats.soft_duplicate_rows} "
        f"duplicate_square_customer_ids_skipped={stats.duplicate_external_ids_skipped}",
        f"auto_linked_by_email={stats.auto_linked_by_email} "
        f"auto_linked_by_phone={stats.auto_linked_by_phone}",
    ]
    if stats.missing_identifiers:
        lines.append(f"missing_square_customer_id={stats.missing_identifiers}")
    if report_dir is not None:
        lines.append(f"reports dir={report_dir}")
    lines.extend(_top_group_lines("email", result.hard_duplicates.duplicate_emails))
    lines.extend(_top_group_lines("phone", result.hard_duplicates.duplicate_phones))
    return lines


def _top_group_lines(kind: str, groups: Sequence[DuplicateGroup]) -> list[str]:
    top = list(groups[:_TOP_GROUPS])
    if not top:
        return [f"hard_duplicate_{kind}_top{_TOP_GROUPS}=none"]
    lines = [f"hard_duplicate_{kind}_top{_TOP_GROUPS}={len(top)}"]
    for value, ids in top:
        shown = ", ".join(ids[:_MAX_IDS_PER_GROUP])
        if len(ids) > _MAX_IDS_PER_GROUP:
            shown += ", ..."
        lines.append(f"hard_dupe_{kind} {value} count={len(ids)} => {shown}")
    return lines


def _write_csv(path: Path, rows: Iterable[ReportRow]) -> None:
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=REPORT_COLUMNS)
        writer.writeheader()
        writer.writerows(row.as_record() for row in rows)


def _cell(value: object) -> str:
    if value is None:
        return ""
    return str(value)
