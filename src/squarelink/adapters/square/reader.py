"""Read Square customer export files into domain rows."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from squarelink.domain.model import SourceRef

from .schema import REQUIRED_HEADER, SquareCustomerCsvRow, header_key

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from squarelink.domain.model import CustomerRow

log = logging.getLogger(__name__)


class SquareCsvError(RuntimeError):
    """Raised when an export file cannot be read as a customer export."""


def iter_customer_rows(path: Path | str) -> Iterator[CustomerRow]:
    """Yield rows of one export; row numbers are file lines (header is line 1)."""

    file_path = Path(path)
    try:
        handle = file_path.open(newline="", encoding="utf-8-sig")
    except OSError as exc:
        raise SquareCsvError(f"Cannot open customer export {file_path}: {exc}") from exc

    with handle:
        reader = csv.reader(handle)
        header = next(reader, None)
        if header is None:
            log.info("Customer export %s is empty", file_path)
            return
        keys = [header_key(column) for column in header]
        if header_key(REQUIRED_HEADER) not in keys:
            raise SquareCsvError(f"{file_path} is missing the {REQUIRED_HEADER!r} column")

        row_number = 1
        for cells in reader:
            row_number += 1
            if not any(cell.strip() for cell in cells):
                continue
            fields = {key: value for key, value in zip(keys, cells, strict=False) if key}
            try:
                record = SquareCustomerCsvRow.model_validate(fields)
            except ValidationError as exc:
                raise SquareCsvError(f"{file_path}:{row_number}: {exc}") from exc
            yield record.to_customer_row(SourceRef(row_number=row_number, file_name=file_path.name))


def load_customer_rows(path: Path | str) -> list[CustomerRow]:
    rows = list(iter_customer_rows(path))
    log.info("Loaded %s customer rows from %s", len(rows), path)
    return rows


def load_customer_rows_from_files(paths: Iterable[Path | str]) -> list[CustomerRow]:
    """Concatenate rows of several exports in the given file order."""

    rows: list[CustomerRow] = []
    for path in paths:
        rows.extend(load_customer_rows(path))
    return rows
