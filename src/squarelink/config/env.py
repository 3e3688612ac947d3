"""Environment variable readers for configuration."""

from __future__ import annotations

import os
from pathlib import Path

from .errors import ConfigurationError

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def env_flag(name: str, *, default: bool = False) -> bool:
    """Read a boolean flag; blank or unset returns ``default``."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean for {name}: {raw!r}")


def env_list(name: str) -> tuple[str, ...]:
    """Read a comma/semicolon separated list, dropping blanks."""

    raw = os.getenv(name)
    if raw is None:
        return ()
    parts = raw.replace(";", ",").split(",")
    return tuple(part.strip() for part in parts if part.strip())


def env_path(name: str) -> Path | None:
    """Read a filesystem path, expanded and resolved; blank or unset returns ``None``."""

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return Path(raw.strip()).expanduser().resolve()
