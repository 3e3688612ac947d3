"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from squarelink.adapters.reports import write_reports
from squarelink.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyImportUnitOfWork,
    is_started,
    startup,
)
from squarelink.adapters.sqlalchemy.verify import collect_registry_health
from squarelink.adapters.square import load_customer_rows_from_files
from squarelink.config.matching import MatchingConfig
from squarelink.config.storage import get_report_dir
from squarelink.domain.ports.unit_of_work import ImportUnitOfWork
from squarelink.domain.reconciliation import ReconciliationEngine

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from squarelink.adapters.reports import ReportPaths
    from squarelink.adapters.sqlalchemy.verify import RegistryHealth
    from squarelink.domain.ports.persistence import ApplyStats
    from squarelink.domain.reconciliation import ReconciliationResult

UnitOfWorkFactory = Callable[[], ImportUnitOfWork]


log = getLogger(__name__)


@dataclass(slots=True)
class ImportCustomersResult:
    reconciliation: ReconciliationResult
    report_dir: Path | None
    reports: ReportPaths | None
    applied: ApplyStats | None

    @property
    def dry_run(self) -> bool:
        return self.applied is None


def _ensure_started(database_uri: str | None) -> None:
    if database_uri is not None:
        startup(database_uri=database_uri, force=True)
    elif not is_started():
        startup()


def import_customers(
    paths: Sequence[Path],
    *,
    config: MatchingConfig | None = None,
    report_dir: Path | None = None,
    write_report_files: bool = True,
    dry_run: bool = False,
    database_uri: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> ImportCustomersResult:
    """Reconcile Square customer exports against the registry and apply the outcome."""

    effective_config = config or MatchingConfig()
    effective_uow: UnitOfWorkFactory
    if unit_of_work_factory is None:
        _ensure_started(database_uri)
        effective_uow = partial(SqlAlchemyImportUnitOfWork, config=effective_config)
    else:
        effective_uow = unit_of_work_factory

    log.info(
        "Starting Square customer import: files=%s, tier=%s, strict=%s, dry_run=%s",
        len(paths),
        effective_config.auto_link_tier.value,
        effective_config.strict,
        dry_run,
    )

    rows = load_customer_rows_from_files(paths)
    engine = ReconciliationEngine(config=effective_config)
    effective_report_dir = (report_dir or get_report_dir()) if write_report_files else None

    reports: ReportPaths | None = None
    applied: ApplyStats | None = None
    with effective_uow() as uow:
        result = engine.reconcile(rows, uow.repositories.snapshots)
        if effective_report_dir is not None:
            reports = write_reports(result, effective_report_dir)
        if dry_run:
            uow.rollback()
        else:
            identities = {identity.external_id: identity for identity in result.identities}
            applied = uow.repositories.applier.apply(result.decisions, identities)
            uow.commit()

    log.info(
        "Finished Square customer import: rows=%s, inserted=%s, linked=%s, updated=%s, "
        "needs_review=%s, errors=%s",
        result.stats.total_rows,
        result.stats.inserted,
        result.stats.linked,
        result.stats.updated,
        result.stats.needs_review,
        result.stats.errors,
    )

    return ImportCustomersResult(
        reconciliation=result,
        report_dir=effective_report_dir,
        reports=reports,
        applied=applied,
    )


def verify_registry(*, database_uri: str | None = None) -> RegistryHealth:
    """Collect health counters for the client registry without writing anything."""

    _ensure_started(database_uri)
    with SqlAlchemyImportUnitOfWork() as uow:
        health = collect_registry_health(uow.session)
        uow.rollback()
    log.info("Finished registry verification: clients=%s", health.total_clients)
    return health
