"""Application configuration helpers."""

from __future__ import annotations

from .env import env_flag, env_list, env_path
from .errors import ConfigurationError
from .logging import configure_logging, level_for_verbosity
from .matching import (
    DEFAULT_ORGANIZATION_INDICATORS,
    DEFAULT_PLACEHOLDER_NAMES,
    DEFAULT_PLACEHOLDER_PREFIX,
    AutoLinkTier,
    MatchingConfig,
    Vocabulary,
)
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_report_dir,
    get_storage_config,
)

__all__ = [
    "DEFAULT_ORGANIZATION_INDICATORS",
    "DEFAULT_PLACEHOLDER_NAMES",
    "DEFAULT_PLACEHOLDER_PREFIX",
    "AutoLinkTier",
    "ConfigurationError",
    "DatabaseConfig",
    "MatchingConfig",
    "StorageConfig",
    "Vocabulary",
    "configure_logging",
    "env_flag",
    "env_list",
    "env_path",
    "get_database_config",
    "get_report_dir",
    "get_storage_config",
    "level_for_verbosity",
]
