from __future__ import annotations

import logging

import pytest

from squarelink.config import configure_logging, level_for_verbosity


@pytest.mark.parametrize(
    ("verbosity", "expected"),
    [(-1, logging.WARNING), (0, logging.INFO), (1, logging.DEBUG), (3, logging.DEBUG)],
)
def test_level_for_verbosity(verbosity: int, expected: int) -> None:
    assert level_for_verbosity(verbosity) == expected


def test_sql_echo_controls_engine_logger() -> None:
    engine_logger = logging.getLogger("sqlalchemy.engine")

    configure_logging(sql_echo=True)
    assert engine_logger.level == logging.INFO

    configure_logging()
    assert engine_logger.level == logging.WARNING
