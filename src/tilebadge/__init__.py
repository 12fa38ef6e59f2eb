# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""tilebadge: incremental disclosure badging for storefront item tiles.

Scans a mutating HTML document for item tiles, decides per catalog entry
whether it carries the "AI Generated Content Disclosure", and badges each
positive tile exactly once:

- known positives: bulk list cached for 24h in a key/value store
- session positives: ids confirmed during this session
- unknown ids: one rate-limited detail-page fetch each
"""

from __future__ import annotations

from .annotate import annotate_html, is_detail_page
from .banner import DisclosureBanner
from .cache_store import CacheStore
from .config import BadgeConfig
from .decorator import Layout, TileDecorator
from .document import DocumentTree, Mutation, Subscription
from .engine import BadgeEngine, ScanReport
from .errors import ConfigError, MalformedPayloadError, StoreError, TileBadgeError, TransportError
from .extractor import IdentifierExtractor
from .locator import StorefrontLocator, TileLocator
from .registry import ProcessedSet, TileRegistry
from .store import InMemoryStore, KeyValueStore
from .verification import DisclosureVerifier, Verdict, VerificationQueue

__all__ = [
    "BadgeConfig",
    "BadgeEngine",
    "CacheStore",
    "ConfigError",
    "DisclosureBanner",
    "DisclosureVerifier",
    "DocumentTree",
    "IdentifierExtractor",
    "InMemoryStore",
    "KeyValueStore",
    "Layout",
    "MalformedPayloadError",
    "Mutation",
    "ProcessedSet",
    "ScanReport",
    "StoreError",
    "StorefrontLocator",
    "Subscription",
    "TileBadgeError",
    "TileDecorator",
    "TileLocator",
    "TileRegistry",
    "TransportError",
    "Verdict",
    "VerificationQueue",
    "annotate_html",
    "is_detail_page",
]
