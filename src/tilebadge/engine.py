# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Incremental classification engine — the scan loop.

One ``BadgeEngine`` per document owns all session state: the known
positive set (via ``CacheStore``), processed tiles, the tile registry
and the verification queue.  Nothing lives in module globals, so
independent engines can run side by side.

Lifecycle::

    engine = BadgeEngine(tree, client=client, store=store)
    await engine.start()     # styles, bulk list, first scan, subscribe
    ...                      # page mutates; debounced re-scans follow
    engine.close()           # release the change subscription

Classification per new tile: extract id -> register -> known positive?
decorate now : enqueue for verification.  A positive verdict decorates
every tile registered under the id, including tiles registered while
the fetch was in flight; tiles registered after it are decorated on
sight because the id is then known.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

import httpx

from .cache_store import CacheStore, epoch_ms
from .config import BadgeConfig
from .debounce import TrailingDebounce
from .decorator import TileDecorator, inject_styles
from .document import DocumentTree, Subscription
from .extractor import IdentifierExtractor
from .locator import StorefrontLocator, TileLocator
from .registry import ProcessedSet, TileRegistry
from .store import KeyValueStore
from .verification import DisclosureVerifier, Verdict, VerificationQueue

logger = logging.getLogger("tilebadge.engine")


class EngineState(StrEnum):
    IDLE = "idle"
    SCANNING = "scanning"


@dataclass
class ScanReport:
    """What one scan pass did."""

    seen: int = 0  # candidate tiles yielded by the locator (with repeats)
    new: int = 0  # tiles classified for the first time
    without_id: int = 0
    decorated: int = 0
    enqueued: int = 0


class BadgeEngine:
    """Scans a ``DocumentTree`` for tiles and badges the positive ones exactly once."""

    def __init__(
        self,
        tree: DocumentTree,
        *,
        client: httpx.AsyncClient,
        store: KeyValueStore,
        config: BadgeConfig | None = None,
        locator: TileLocator | None = None,
        clock: Callable[[], int] = epoch_ms,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        verify: Callable[[str], Awaitable[Verdict]] | None = None,
    ) -> None:
        self._tree = tree
        self._config = config or BadgeConfig()
        self._locator = locator or StorefrontLocator()
        self._extractor = IdentifierExtractor(self._locator)
        self._decorator = TileDecorator()
        self._cache = CacheStore(store, client, self._config, clock=clock)
        self._registry = TileRegistry()
        self._processed = ProcessedSet()
        self._queue = VerificationQueue(
            verify or DisclosureVerifier(client, self._config).verify,
            self._on_verified_positive,
            delay=self._config.fetch_delay,
            sleep=sleep,
        )
        self._state = EngineState.IDLE
        self._debounce: TrailingDebounce | None = None
        self._subscription: Subscription | None = None
        self._scan_count = 0

    # -- Introspection --

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def started(self) -> bool:
        return self._subscription is not None

    @property
    def scan_count(self) -> int:
        return self._scan_count

    @property
    def cache(self) -> CacheStore:
        return self._cache

    @property
    def registry(self) -> TileRegistry:
        return self._registry

    @property
    def queue(self) -> VerificationQueue:
        return self._queue

    @property
    def decorator(self) -> TileDecorator:
        return self._decorator

    # -- Lifecycle --

    async def start(self) -> None:
        """Inject styles, load the known-positive set, scan once, then watch for changes."""
        if self.started:
            return
        inject_styles(self._tree)
        try:
            await self._cache.load_known_positives()
        except Exception:
            logger.exception("Known-positive load failed; relying on per-entry verification")
        try:
            report = self.scan()
        except Exception:
            logger.exception("Initial scan failed; waiting for page changes")
        else:
            logger.info(
                "Initial scan: %d tile(s), %d badged, %d queued for verification",
                report.new,
                report.decorated,
                report.enqueued,
            )
        self._debounce = TrailingDebounce(
            self.scan,
            self._config.scan_debounce,
            loop=asyncio.get_running_loop(),
            name="scan",
        )
        self._subscription = self._tree.subscribe(self._debounce.trigger)

    def close(self) -> None:
        """Release the change subscription and drop any scheduled re-scan.

        In-flight verification keeps running to completion.
        """
        if self._debounce is not None:
            self._debounce.cancel()
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    async def settle(self) -> None:
        """Wait until no re-scan is scheduled and the verification queue is idle."""
        while True:
            if self._debounce is not None:
                await self._debounce.wait_idle()
            await self._queue.join()
            scan_pending = self._debounce is not None and self._debounce.pending
            if not scan_pending and not self._queue.draining and not self._queue.pending:
                return

    # -- Scan loop --

    def scan(self) -> ScanReport:
        """One full pass over the document.  Re-entrant calls are ignored."""
        report = ScanReport()
        if self._state is EngineState.SCANNING:
            return report
        self._state = EngineState.SCANNING
        self._scan_count += 1
        try:
            # materialise first: decorating mutates the tree being iterated
            tiles = list(self._locator.find_tiles(self._tree.root))
            for tile in tiles:
                report.seen += 1
                if tile in self._processed:
                    continue
                self._processed.add(tile)
                report.new += 1
                self._classify(tile, report)
        finally:
            self._state = EngineState.IDLE

        if self._queue.pending and not self._queue.draining:
            self._queue.start()
        if report.new:
            logger.debug(
                "Scan %d: %d new, %d without id, %d badged, %d queued",
                self._scan_count,
                report.new,
                report.without_id,
                report.decorated,
                report.enqueued,
            )
        return report

    def _classify(self, tile, report: ScanReport) -> None:
        entry_id = self._extractor.extract(tile)
        if entry_id is None:
            report.without_id += 1
            return
        self._registry.register(entry_id, tile)
        if self._cache.is_known(entry_id):
            if self._decorator.decorate(tile):
                report.decorated += 1
        elif self._queue.enqueue(entry_id):
            report.enqueued += 1

    def _on_verified_positive(self, entry_id: str) -> None:
        self._cache.record_positive(entry_id)
        tiles = self._registry.tiles_for(entry_id)
        badged = sum(1 for tile in tiles if self._decorator.decorate(tile))
        logger.info("Entry %s verified positive; badged %d of %d tile(s)", entry_id, badged, len(tiles))
