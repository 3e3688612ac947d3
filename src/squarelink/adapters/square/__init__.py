"""Public interface for the Square customer export adapter."""

from __future__ import annotations

from .reader import (
    SquareCsvError,
    iter_customer_rows,
    load_customer_rows,
    load_customer_rows_from_files,
)
from .schema import SquareCustomerCsvRow, header_key

__all__ = [
    "SquareCsvError",
    "SquareCustomerCsvRow",
    "header_key",
    "iter_customer_rows",
    "load_customer_rows",
    "load_customer_rows_from_files",
]
