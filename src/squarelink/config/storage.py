"""Locations of the registry database and the CSV reports.

Both live below one data directory: ``SQUARELINK_DATA_DIR``, else the per-user
data location. ``SQUARELINK_REPORT_DIR`` moves only the reports, while
``DATABASE_URI`` replaces the bundled SQLite registry altogether.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_path

APP_DIR_NAME: Final[str] = "squarelink"
DEFAULT_DB_FILENAME: Final[str] = "squarelink.db"
REPORTS_DIR_NAME: Final[str] = "reports"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    report_dir_override: Path | None = None

    @property
    def report_dir(self) -> Path:
        return self.report_dir_override or self.data_dir / REPORTS_DIR_NAME

    def sqlite_uri(self) -> str:
        """URI of the bundled registry; creates the data directory on first use."""

        self.data_dir.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{self.data_dir / DEFAULT_DB_FILENAME}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _user_data_root() -> Path:
    if os.name == "nt":
        return env_path("LOCALAPPDATA") or Path.home() / "AppData" / "Local"
    return env_path("XDG_DATA_HOME") or Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    data_dir = env_path("SQUARELINK_DATA_DIR") or (_user_data_root() / APP_DIR_NAME).resolve()
    return StorageConfig(
        data_dir=data_dir,
        report_dir_override=env_path("SQUARELINK_REPORT_DIR"),
    )


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    uri = os.getenv("DATABASE_URI", "").strip()
    if uri:
        return DatabaseConfig(uri=uri)
    return DatabaseConfig(uri=(storage or get_storage_config()).sqlite_uri())


def get_report_dir(*, storage: StorageConfig | None = None) -> Path:
    return (storage or get_storage_config()).report_dir
