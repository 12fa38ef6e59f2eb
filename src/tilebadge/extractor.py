# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Entry identifier extraction from a tile.

Strategies, first match wins (structured attributes beat URL parsing):

1. ``data-appid`` on a nested input / checkbox control
2. ``data-ds-appid`` on the tile itself
3. ``data-ds-appid`` on the tile's game link
4. numeric id parsed from the link's ``/app/<id>`` path
"""

from __future__ import annotations

import logging
import re

from lxml.html import HtmlElement

from .locator import ID_CONTROL_ATTR, StorefrontLocator, TileLocator

logger = logging.getLogger("tilebadge.extractor")

TILE_ID_ATTR = "data-ds-appid"
_APP_PATH_RE = re.compile(r"/app/(\d+)")


def _attr(el: HtmlElement | None, name: str) -> str | None:
    if el is None:
        return None
    value = (el.get(name) or "").strip()
    return value or None


class IdentifierExtractor:
    """Turns a tile into a stable entry id, or None."""

    def __init__(
        self,
        locator: TileLocator | None = None,
        *,
        control_attr: str = ID_CONTROL_ATTR,
        tile_attr: str = TILE_ID_ATTR,
        url_pattern: re.Pattern[str] = _APP_PATH_RE,
    ) -> None:
        self._locator = locator or StorefrontLocator()
        self._control_attr = control_attr
        self._tile_attr = tile_attr
        self._url_pattern = url_pattern

    def extract(self, tile: HtmlElement) -> str | None:
        entry_id = _attr(self._locator.find_id_control(tile), self._control_attr)
        if entry_id:
            return entry_id

        entry_id = _attr(tile, self._tile_attr)
        if entry_id:
            return entry_id

        link = self._locator.find_link(tile)
        if link is None:
            return None

        entry_id = _attr(link, self._tile_attr)
        if entry_id:
            return entry_id

        m = self._url_pattern.search(link.get("href") or "")
        if m is None:
            logger.debug("No id in link href=%r", link.get("href"))
            return None
        return m.group(1)
