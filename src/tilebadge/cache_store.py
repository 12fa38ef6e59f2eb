# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Known-positive identifier cache with TTL refresh and stale fallback.

Two persisted slots hold the last bulk list and its fetch time (epoch ms).
A load inside the TTL window is served from the store with no network
traffic.  Outside the window one bulk fetch is attempted:

- success: persist list + timestamp, return it
- failure (transport, non-200, malformed payload): keep the timestamp
  unchanged so the next load retries, and fall back to the stale
  persisted list so the badge set never regresses to empty.  On first
  run there is nothing to fall back to and the set stays empty.

Session discoveries (``record_positive``) live in memory only.  The
persisted slots mirror the canonical remote list, never ad-hoc parses.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Annotated, Any

import httpx
from pydantic import Field, StringConstraints, TypeAdapter, ValidationError

from .config import BadgeConfig
from .errors import MalformedPayloadError, StoreError, TransportError
from .store import KeyValueStore

logger = logging.getLogger("tilebadge.cache_store")

_NumericId = Annotated[int, Field(strict=True, ge=0)]
_NumericStr = Annotated[str, StringConstraints(strict=True, strip_whitespace=True, pattern=r"^\d+$")]
_ID_LIST = TypeAdapter(list[_NumericId | _NumericStr])


def epoch_ms() -> int:
    """Wall-clock time in epoch milliseconds (the persisted timestamp unit)."""
    return int(time.time() * 1000)


def normalize_ids(raw: Iterable[Any]) -> list[str]:
    """Normalise ids to decimal strings, dropping blanks and duplicates (order kept)."""
    seen: set[str] = set()
    out: list[str] = []
    for item in raw:
        if isinstance(item, bool) or item is None:
            continue
        key = str(item).strip()
        if key and key not in seen:
            seen.add(key)
            out.append(key)
    return out


def parse_id_list(payload: bytes | str) -> list[str]:
    """Parse a bulk list document: a flat JSON array of ints or numeric strings.

    Raises:
        MalformedPayloadError: If the document is not valid JSON or not such an array.
    """
    try:
        items = _ID_LIST.validate_json(payload)
    except ValidationError as e:
        raise MalformedPayloadError(f"bulk list rejected: {e.error_count()} error(s)") from e
    return normalize_ids(items)


@dataclass
class CacheStats:
    """Counters for load behaviour, used for logging and tests."""

    cache_hits: int = 0
    refreshes: int = 0
    refresh_failures: int = 0
    stale_fallbacks: int = 0
    session_additions: int = 0
    last_source: str = field(default="")  # "cache" | "network" | "stale" | "empty"


class CacheStore:
    """Owns the KnownPositiveSet for one session.

    ``load_known_positives()`` merges the bulk list into the set;
    ``record_positive()`` adds a single verified id.  The set only grows.
    """

    def __init__(
        self,
        store: KeyValueStore,
        client: httpx.AsyncClient,
        config: BadgeConfig | None = None,
        *,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        self._store = store
        self._client = client
        self._config = config or BadgeConfig()
        self._clock = clock
        self._known: set[str] = set()
        self._stats = CacheStats()

    # -- Lookup --

    @property
    def known(self) -> frozenset[str]:
        return frozenset(self._known)

    def is_known(self, entry_id: str) -> bool:
        return entry_id in self._known

    def record_positive(self, entry_id: str) -> bool:
        """Add a verified id to the in-memory set.  Returns False if already known."""
        if entry_id in self._known:
            return False
        self._known.add(entry_id)
        self._stats.session_additions += 1
        return True

    @property
    def stats(self) -> CacheStats:
        return self._stats

    # -- Load --

    async def load_known_positives(self) -> frozenset[str]:
        """Load the bulk list (cache or network) into the known set and return the set."""
        cfg = self._config
        now = self._clock()
        fetched_at = await self._read_timestamp()
        cached = await self._read_ids()

        if cached is not None and now - fetched_at < cfg.cache_ttl_ms:
            self._known.update(cached)
            self._stats.cache_hits += 1
            self._stats.last_source = "cache"
            logger.info("Loaded %d ids from cache (age=%dms)", len(cached), now - fetched_at)
            return self.known

        try:
            fresh = await self._fetch_bulk_list()
        except (TransportError, MalformedPayloadError) as e:
            self._stats.refresh_failures += 1
            if cached:
                self._known.update(cached)
                self._stats.stale_fallbacks += 1
                self._stats.last_source = "stale"
                logger.warning("Bulk list refresh failed (%s); using %d stale cached ids", e, len(cached))
            else:
                self._stats.last_source = "empty"
                logger.warning("Bulk list refresh failed (%s); no cached ids", e)
            return self.known

        self._known.update(fresh)
        self._stats.refreshes += 1
        self._stats.last_source = "network"
        try:
            await self._store.set(cfg.cache_key, fresh)
            await self._store.set(cfg.cache_timestamp_key, now)
        except StoreError:
            logger.warning("Could not persist bulk list; will refetch next load", exc_info=True)
        logger.info("Fetched and cached %d ids", len(fresh))
        return self.known

    # -- Internal --

    async def _read_timestamp(self) -> int:
        try:
            raw = await self._store.get(self._config.cache_timestamp_key, 0)
        except StoreError:
            logger.warning("Cache timestamp unreadable; treating cache as stale", exc_info=True)
            return 0
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            return 0
        return int(raw)

    async def _read_ids(self) -> list[str] | None:
        try:
            raw = await self._store.get(self._config.cache_key, None)
        except StoreError:
            logger.warning("Cached id list unreadable", exc_info=True)
            return None
        if not isinstance(raw, list):
            return None
        return normalize_ids(raw)

    async def _fetch_bulk_list(self) -> list[str]:
        url = self._config.bulk_list_url
        try:
            res = await self._client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(f"GET {url} failed: {e!r}", url=url) from e
        if res.status_code != 200:
            raise TransportError(f"GET {url} returned {res.status_code}", url=url, status=res.status_code)
        return parse_id_list(res.content)
