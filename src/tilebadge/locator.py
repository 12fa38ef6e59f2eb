# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tile and identifier location in a storefront document.

``TileLocator`` is the injected capability the engine and the extractor
use to find candidate tiles and their identifier-bearing sub-elements.
``StorefrontLocator`` implements it for the Steam store markup with plain
``lxml`` traversal (class-token and attribute tests, no CSS engine).
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from lxml.html import HtmlElement

# ---------------------------------------------------------------------------
# Markup markers
# ---------------------------------------------------------------------------

APP_PATH_MARKER = "/app/"
ID_CONTROL_ATTR = "data-appid"
TILE_CONTAINER_CLASS = "_3r4Ny9tQdQZc50XDM5B2q2"  # modern capsule container
DS_FLAGGED_CLASS = "ds_flagged"  # spotlight / main capsule
TAB_ITEM_CLASS = "tab_item"  # upcoming, top sellers lists
SEARCH_ROW_CLASS = "search_result_row"
PANEL_CLASS_FRAGMENT = "Panel"  # wishlist panels use hashed class names containing "Panel"
PANEL_INDEX_ATTR = "data-index"

# Closest-ancestor precedence for a tile that contains a game link
_LINK_TILE_CLASSES = (TILE_CONTAINER_CLASS, DS_FLAGGED_CLASS, TAB_ITEM_CLASS, SEARCH_ROW_CLASS)


# ---------------------------------------------------------------------------
# Element helpers
# ---------------------------------------------------------------------------


def has_class(el: HtmlElement, name: str) -> bool:
    return name in (el.get("class") or "").split()


def closest(el: HtmlElement, predicate) -> HtmlElement | None:
    """*el* or its nearest ancestor satisfying *predicate*, else None."""
    node: HtmlElement | None = el
    while node is not None:
        if isinstance(node, HtmlElement) and predicate(node):
            return node
        node = node.getparent()
    return None


def closest_class(el: HtmlElement, name: str) -> HtmlElement | None:
    return closest(el, lambda n: has_class(n, name))


def _is_game_link(el: HtmlElement) -> bool:
    return el.tag == "a" and APP_PATH_MARKER in (el.get("href") or "")


def _is_id_control(el: HtmlElement) -> bool:
    return el.tag == "input" and el.get(ID_CONTROL_ATTR) is not None


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class TileLocator(Protocol):
    """Finds tiles and the sub-elements identifiers are read from."""

    def find_tiles(self, root: HtmlElement) -> Iterator[HtmlElement]: ...

    def find_id_control(self, tile: HtmlElement) -> HtmlElement | None: ...

    def find_link(self, tile: HtmlElement) -> HtmlElement | None: ...


# ---------------------------------------------------------------------------
# Storefront implementation
# ---------------------------------------------------------------------------


class StorefrontLocator:
    """Steam store tile layouts: capsules, spotlights, tab rows, search rows, wishlist panels."""

    def find_tiles(self, root: HtmlElement) -> Iterator[HtmlElement]:
        """Yield candidate tiles in document order.  A tile may be yielded more than once."""
        for el in root.iter():
            if not isinstance(el, HtmlElement):
                continue  # comments, processing instructions
            if _is_game_link(el):
                yield self._tile_for_link(el)
            elif _is_id_control(el):
                panel = self._panel_for_control(el)
                if panel is not None:
                    yield panel

    def find_id_control(self, tile: HtmlElement) -> HtmlElement | None:
        for el in tile.iterdescendants("input"):
            if el.get(ID_CONTROL_ATTR) is not None:
                return el
        return None

    def find_link(self, tile: HtmlElement) -> HtmlElement | None:
        if tile.tag == "a":
            return tile
        for el in tile.iterdescendants("a"):
            if _is_game_link(el):
                return el
        return None

    @staticmethod
    def _tile_for_link(link: HtmlElement) -> HtmlElement:
        for name in _LINK_TILE_CLASSES:
            tile = closest_class(link, name)
            if tile is not None:
                return tile
        return link

    @staticmethod
    def _panel_for_control(control: HtmlElement) -> HtmlElement | None:
        panel = closest(control, lambda n: PANEL_CLASS_FRAGMENT in (n.get("class") or ""))
        if panel is None:
            panel = closest(control, lambda n: n.get(PANEL_INDEX_ATTR) is not None)
        if panel is None:
            parent = control.getparent()
            panel = parent.getparent() if parent is not None else None
        return panel
