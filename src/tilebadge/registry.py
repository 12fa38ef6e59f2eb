# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tile bookkeeping: identifier fan-out and processed-tile membership.

One entry can be rendered by many tiles at once (grid, carousel, search
row, wishlist panel).  ``TileRegistry`` remembers every tile seen for an
id so a late positive verdict can decorate all of them.  Stale handles
for tiles the page has since removed are tolerated, not compacted.

``ProcessedSet`` holds strong references.  lxml builds element proxies on
demand and discards them once unreferenced, so a proxy's identity (and
``id()``) is only stable while something keeps it alive.  Weak
membership would silently forget id-less tiles after every scan.
"""

from __future__ import annotations

from lxml.html import HtmlElement


class TileRegistry:
    """Identifier -> tiles, in registration order.  Append-only."""

    def __init__(self) -> None:
        self._tiles: dict[str, list[HtmlElement]] = {}

    def register(self, entry_id: str, tile: HtmlElement) -> None:
        # duplicate tiles are filtered upstream by ProcessedSet
        self._tiles.setdefault(entry_id, []).append(tile)

    def tiles_for(self, entry_id: str) -> list[HtmlElement]:
        return list(self._tiles.get(entry_id, ()))

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._tiles

    def __len__(self) -> int:
        return len(self._tiles)


class ProcessedSet:
    """Identity set of classified tiles.  Members are kept alive for the page's lifetime."""

    def __init__(self) -> None:
        self._seen: dict[int, HtmlElement] = {}

    def add(self, tile: HtmlElement) -> None:
        self._seen[id(tile)] = tile

    def __contains__(self, tile: object) -> bool:
        return self._seen.get(id(tile)) is tile

    def __len__(self) -> int:
        return len(self._seen)
