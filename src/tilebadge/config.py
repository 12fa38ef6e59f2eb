# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tunable constants for a badging session.

Leaf module — imports only ``errors``.  Defaults match the storefront
deployment; ``BadgeConfig.from_env()`` applies ``TILEBADGE_*`` overrides.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass

from .errors import ConfigError

DEFAULT_BULK_LIST_URL = "https://raw.githubusercontent.com/Pierre-Demessence/SteamAIGamesIndicator/main/appids.json"
DEFAULT_DETAIL_URL_TEMPLATE = "https://store.steampowered.com/app/{entry_id}/"
DEFAULT_MARKER_PHRASE = "AI Generated Content Disclosure"
DEFAULT_CACHE_TTL_MS = 24 * 60 * 60 * 1000  # 24 hours

BADGE_CLASS = "tm-ai-badge"
STYLE_ELEMENT_ID = f"{BADGE_CLASS}-styles"
BANNER_ELEMENT_ID = "tm-ai-label"

_ENV_PREFIX = "TILEBADGE_"


@dataclass(frozen=True, slots=True)
class BadgeConfig:
    """Immutable configuration for one badging session."""

    bulk_list_url: str = DEFAULT_BULK_LIST_URL
    detail_url_template: str = DEFAULT_DETAIL_URL_TEMPLATE
    marker_phrase: str = DEFAULT_MARKER_PHRASE
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS
    fetch_delay: float = 1.0  # seconds between verification fetches
    scan_debounce: float = 0.2  # seconds of quiescence before a re-scan
    banner_debounce: float = 0.3
    navigation_debounce: float = 0.2
    cache_key: str = "aiAppIds"
    cache_timestamp_key: str = "aiAppIdsCacheTime"

    def __post_init__(self) -> None:
        if not self.bulk_list_url:
            raise ConfigError("bulk_list_url must not be empty")
        if "{entry_id}" not in self.detail_url_template:
            raise ConfigError(f"detail_url_template must contain '{{entry_id}}', got {self.detail_url_template!r}")
        if not self.marker_phrase.strip():
            raise ConfigError("marker_phrase must not be blank")
        if self.cache_ttl_ms <= 0:
            raise ConfigError(f"cache_ttl_ms must be > 0, got {self.cache_ttl_ms}")
        if self.fetch_delay < 0:
            raise ConfigError(f"fetch_delay must be >= 0, got {self.fetch_delay}")
        for name in ("scan_debounce", "banner_debounce", "navigation_debounce"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0, got {getattr(self, name)}")
        if not self.cache_key or not self.cache_timestamp_key:
            raise ConfigError("cache slot names must not be empty")
        if self.cache_key == self.cache_timestamp_key:
            raise ConfigError("cache_key and cache_timestamp_key must differ")

    def detail_url(self, entry_id: str) -> str:
        """Detail page URL for *entry_id*."""
        return self.detail_url_template.format(entry_id=entry_id)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> BadgeConfig:
        """Build a config from ``TILEBADGE_<FIELD>`` variables, falling back to defaults.

        Raises:
            ConfigError: If a variable cannot be converted to its field type.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for f in dataclasses.fields(cls):
            raw = env.get(_ENV_PREFIX + f.name.upper(), "").strip()
            if not raw:
                continue
            default = f.default
            try:
                if isinstance(default, int):
                    overrides[f.name] = int(raw)
                elif isinstance(default, float):
                    overrides[f.name] = float(raw)
                else:
                    overrides[f.name] = raw
            except ValueError:
                raise ConfigError(f"{_ENV_PREFIX}{f.name.upper()}: cannot parse {raw!r}") from None
        return cls(**overrides)
