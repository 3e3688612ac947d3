from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest  # noqa: TC002

from squarelink.config import storage


def test_storage_config_prefers_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("SQUARELINK_REPORT_DIR", raising=False)
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("SQUARELINK_DATA_DIR", str(custom))

    config = storage.get_storage_config()

    assert config.data_dir == custom.resolve()
    assert config.report_dir == custom.resolve() / storage.REPORTS_DIR_NAME


def test_database_uri_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", " sqlite:///override.db ")

    assert storage.get_database_config().uri == "sqlite:///override.db"


def test_database_uri_creates_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("SQUARELINK_DATA_DIR", str(tmp_path / "data-dir"))

    uri = storage.get_database_config().uri

    expected_path = (tmp_path / "data-dir" / storage.DEFAULT_DB_FILENAME).resolve()
    assert uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()


def test_report_dir_env_wins(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SQUARELINK_REPORT_DIR", str(tmp_path / "reports-here"))

    assert storage.get_report_dir() == (tmp_path / "reports-here").resolve()


def test_report_dir_defaults_to_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("SQUARELINK_REPORT_DIR", raising=False)
    monkeypatch.setenv("SQUARELINK_DATA_DIR", str(tmp_path))

    assert storage.get_report_dir() == tmp_path.resolve() / storage.REPORTS_DIR_NAME


def test_explicit_storage_config_decides_report_dir(tmp_path: Path) -> None:
    moved = storage.StorageConfig(data_dir=tmp_path, report_dir_override=tmp_path / "elsewhere")

    assert storage.get_report_dir(storage=moved) == tmp_path / "elsewhere"
    assert not (tmp_path / "elsewhere").exists()
