"""Value normalization for customer identity keys.

Every helper returns ``None`` for values that normalize to nothing, so callers
can treat "absent" and "blank" the same way.
"""

from __future__ import annotations

import unicodedata
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

MULTI_VALUE_SEPARATORS = (",", ";", "\n", "\r")


def normalize_email(value: str | None) -> str | None:
    if value is None:
        return None
    email = value.strip().lower()
    return email or None


def normalize_phone(value: str | None) -> str | None:
    if value is None:
        return None
    digits = "".join(ch for ch in value if ch.isdigit())
    return digits or None


def normalize_name(value: str | None) -> str | None:
    """Trim and collapse whitespace, keeping case and punctuation (display form)."""

    if value is None:
        return None
    text = " ".join(value.split())
    return text or None


def name_key(value: str | None) -> str | None:
    """Comparison key for names: NFKC, casefolded, punctuation dropped."""

    if value is None:
        return None
    text = unicodedata.normalize("NFKC", value)
    text = text.casefold()
    text = "".join(ch for ch in text if not unicodedata.category(ch).startswith("P"))
    text = " ".join(text.split())
    return text or None


def state_key(value: str | None) -> str | None:
    key = name_key(value)
    return key.upper() if key else None


def postal_key(value: str | None) -> str | None:
    """Letters and digits only, uppercased (``90210-1234`` -> ``902101234``)."""

    if value is None:
        return None
    key = "".join(ch.upper() for ch in value if ch.isalnum())
    return key or None


def split_multi_value(
    value: str | None,
    normalizer: Callable[[str | None], str | None],
) -> tuple[str, ...]:
    """Split a multi-valued cell, normalize each part, dedupe in first-seen order."""

    if value is None or not value.strip():
        return ()
    text = value
    for separator in MULTI_VALUE_SEPARATORS[1:]:
        text = text.replace(separator, MULTI_VALUE_SEPARATORS[0])
    results: list[str] = []
    for part in text.split(MULTI_VALUE_SEPARATORS[0]):
        normalized = normalizer(part)
        if normalized is not None and normalized not in results:
            results.append(normalized)
    return tuple(results)


def tokenize(value: str | None) -> list[str]:
    """Maximal runs of letters/digits, in order."""

    if not value:
        return []
    tokens: list[str] = []
    current: list[str] = []
    for ch in value:
        if ch.isalnum():
            current.append(ch)
            continue
        if current:
            tokens.append("".join(current))
            current.clear()
    if current:
        tokens.append("".join(current))
    return tokens
