"""Matching vocabularies and auto-link settings.

Vocabularies are plain ``token -> enabled`` mappings so deployments can add or
switch off tokens without touching the classification and scoring rules.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final

from .env import env_flag, env_list
from .errors import ConfigurationError

DEFAULT_ORGANIZATION_INDICATORS: Final[tuple[str, ...]] = (
    "LLC",
    "INC",
    "CO",
    "COMPANY",
    "STUDIO",
    "SCHOOL",
    "CHURCH",
    "FOUNDATION",
    "SORORITY",
    "FRATERNITY",
    "CHAPTER",
    "UNIVERSITY",
    "COLLEGE",
    "DEPARTMENT",
    "ASSOCIATION",
    "CLUB",
)
DEFAULT_PLACEHOLDER_NAMES: Final[tuple[str, ...]] = ("UNKNOWN", "CUSTOMER")
DEFAULT_PLACEHOLDER_PREFIX: Final[str] = "square_"


@dataclass(frozen=True, slots=True)
class Vocabulary:
    """Case-insensitive token vocabulary with per-token enable flags."""

    flags: Mapping[str, bool] = field(default_factory=dict[str, bool])

    @classmethod
    def of(cls, tokens: Iterable[str]) -> Vocabulary:
        return cls(flags={token.strip().upper(): True for token in tokens if token.strip()})

    def contains(self, token: str) -> bool:
        return self.flags.get(token.upper(), False)

    def first_match(self, tokens: Iterable[str]) -> str | None:
        """Return the first enabled token (uppercased) found in ``tokens``."""

        for token in tokens:
            if self.contains(token):
                return token.upper()
        return None

    def with_overrides(
        self,
        *,
        enable: Iterable[str] = (),
        disable: Iterable[str] = (),
    ) -> Vocabulary:
        flags = dict(self.flags)
        for token in enable:
            flags[token.strip().upper()] = True
        for token in disable:
            flags[token.strip().upper()] = False
        return Vocabulary(flags=flags)


class AutoLinkTier(StrEnum):
    """Strength of signal required before linking to an existing client."""

    NONE = "none"
    EMAIL_ONLY = "email_only"
    PHONE_ONLY = "phone_only"
    EMAIL_OR_PHONE = "email_or_phone"

    @classmethod
    def parse(cls, value: str | None) -> AutoLinkTier:
        if value is None or not value.strip():
            return cls.EMAIL_OR_PHONE
        normalized = value.strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError as exc:
            choices = ", ".join(tier.value for tier in cls)
            raise ConfigurationError(
                f"Invalid auto-link tier {value!r}. Use one of: {choices}."
            ) from exc

    @property
    def uses_email(self) -> bool:
        return self in (AutoLinkTier.EMAIL_ONLY, AutoLinkTier.EMAIL_OR_PHONE)

    @property
    def uses_phone(self) -> bool:
        return self in (AutoLinkTier.PHONE_ONLY, AutoLinkTier.EMAIL_OR_PHONE)


@dataclass(frozen=True, slots=True, kw_only=True)
class MatchingConfig:
    organization_indicators: Vocabulary = field(
        default_factory=lambda: Vocabulary.of(DEFAULT_ORGANIZATION_INDICATORS)
    )
    placeholder_names: Vocabulary = field(
        default_factory=lambda: Vocabulary.of(DEFAULT_PLACEHOLDER_NAMES)
    )
    placeholder_prefix: str = DEFAULT_PLACEHOLDER_PREFIX
    auto_link_tier: AutoLinkTier = AutoLinkTier.EMAIL_OR_PHONE
    strict: bool = False

    @classmethod
    def from_environment(cls) -> MatchingConfig:
        indicators = Vocabulary.of(DEFAULT_ORGANIZATION_INDICATORS).with_overrides(
            enable=env_list("SQUARELINK_EXTRA_ORG_INDICATORS"),
            disable=env_list("SQUARELINK_DISABLED_ORG_INDICATORS"),
        )
        return cls(
            organization_indicators=indicators,
            auto_link_tier=AutoLinkTier.parse(os.getenv("SQUARELINK_AUTO_LINK_TIER")),
            strict=env_flag("SQUARELINK_STRICT"),
        )
