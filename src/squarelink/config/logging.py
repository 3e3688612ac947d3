"""Logging setup for the import CLI."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def level_for_verbosity(verbosity: int) -> int:
    """Map ``-v`` counts to a logging level (0 -> INFO, 1+ -> DEBUG, -1 -> WARNING)."""

    if verbosity < 0:
        return logging.WARNING
    if verbosity == 0:
        return logging.INFO
    return logging.DEBUG


def configure_logging(
    *,
    level: int = logging.INFO,
    force: bool = False,
    sql_echo: bool = False,
) -> None:
    """Initialise the root logger with the terse CLI format.

    SQLAlchemy engine logging stays at WARNING unless ``sql_echo`` is set, so
    per-statement output does not drown the import summary.
    """

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if sql_echo else logging.WARNING)
