# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Badge placement for the storefront tile layouts.

Layouts are mutually exclusive and tested in a fixed priority order; the
first match decides where the badge goes.  No match means no badge:
badging is cosmetic and never an error.  All mutations are additive
except the singleton style sheet, which may be removed and recreated.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import StrEnum

import lxml.html
from lxml.html import HtmlElement

from .config import BADGE_CLASS, STYLE_ELEMENT_ID
from .document import DocumentTree
from .locator import DS_FLAGGED_CLASS, ID_CONTROL_ATTR, SEARCH_ROW_CLASS, TAB_ITEM_CLASS, closest_class, has_class

logger = logging.getLogger("tilebadge.decorator")

DECORATOR_SLOT_CLASS = "CapsuleDecorators"


class Layout(StrEnum):
    CAPSULE = "capsule"  # inline decorator slot
    SPOTLIGHT = "spotlight"  # absolute-positioned ds_flag overlay
    TAB_ITEM = "tab_item"
    SEARCH_RESULT = "search_result"
    WISHLIST = "wishlist"  # overlay on the image container


@dataclass(frozen=True, slots=True)
class Placement:
    layout: Layout
    anchor: HtmlElement


# ---------------------------------------------------------------------------
# Badge markup
# ---------------------------------------------------------------------------

_ICON_PATH = '<path fill="currentColor" d="M1 21h22L12 2 1 21zm12-3h-2v-2h2v2zm0-4h-2v-4h2v4z"></path>'

_BADGE_HTML: dict[Layout, str] = {
    Layout.CAPSULE: (
        f'<span class="{BADGE_CLASS} _2gxv9cF-4n9wq4yxruOTNl">'
        f'<svg viewBox="0 0 24 24" class="_3LecBjgbnwvS6bCFqxs6SC">{_ICON_PATH}</svg>Uses AI</span>'
    ),
    Layout.SPOTLIGHT: (
        f'<div class="ds_flag ds_wishlist_flag {BADGE_CLASS}">'
        f'<svg viewBox="0 0 24 24" class="_3LecBjgbnwvS6bCFqxs6SC" style="height: 10px; margin-right: 4px;">'
        f"{_ICON_PATH}</svg>USES AI&#160;&#160;</div>"
    ),
    Layout.TAB_ITEM: f'<span class="{BADGE_CLASS}">USES AI</span>',
    Layout.SEARCH_RESULT: f'<span class="{BADGE_CLASS}">USES AI</span>',
    Layout.WISHLIST: f'<span class="{BADGE_CLASS} wishlist-badge">USES AI</span>',
}


def make_badge(layout: Layout) -> HtmlElement:
    return lxml.html.fragment_fromstring(_BADGE_HTML[layout])


_STYLES = """
.BADGE {
    background: #ff6b6b;
}
.ds_flag.BADGE {
    background: linear-gradient(135deg, #ff6b6b 0%, #ff6b6b 100%);
    top: 52px;
    padding-left: 4px;
}
.tab_item,
.search_result_row,
:has(> .BADGE.wishlist-badge) {
    position: relative;
}
.tab_item > .BADGE,
.search_result_row > .BADGE,
.BADGE.wishlist-badge {
    position: absolute;
    top: 3px;
    left: 0px;
    font-size: 11px;
    padding: 3px 14px 3px 10px;
    color: #111;
    z-index: 10;
    line-height: 1;
    pointer-events: none;
    box-shadow: 0 0 10px rgba(0, 0, 0, .9);
    text-transform: uppercase;
}
""".replace("BADGE", BADGE_CLASS)


# ---------------------------------------------------------------------------
# Style sheet singleton
# ---------------------------------------------------------------------------


def inject_styles(tree: DocumentTree) -> HtmlElement:
    """Ensure the badge style sheet exists in ``<head>``.  Returns the element."""
    existing = tree.get_element_by_id(STYLE_ELEMENT_ID)
    if existing is not None:
        return existing
    head = tree.head
    if head is None:
        head = tree.root.makeelement("head", {})
        tree.root.insert(0, head)
    style = head.makeelement("style", {"id": STYLE_ELEMENT_ID})
    style.text = _STYLES
    head.append(style)
    return style


def reset_styles(tree: DocumentTree) -> HtmlElement:
    """Drop and recreate the style sheet (e.g. after the page rewrote ``<head>``)."""
    existing = tree.get_element_by_id(STYLE_ELEMENT_ID)
    if existing is not None:
        existing.drop_tree()
    return inject_styles(tree)


# ---------------------------------------------------------------------------
# Layout detection
# ---------------------------------------------------------------------------


def _find_descendant(tile: HtmlElement, predicate) -> HtmlElement | None:
    for el in tile.iterdescendants():
        if isinstance(el, HtmlElement) and predicate(el):
            return el
    return None


def has_badge(el: HtmlElement) -> bool:
    return _find_descendant(el, lambda n: has_class(n, BADGE_CLASS)) is not None


def detect_layout(tile: HtmlElement) -> Placement | None:
    """Pick the badge anchor for *tile*, or None when no layout matches."""
    slot = _find_descendant(tile, lambda n: has_class(n, DECORATOR_SLOT_CLASS))
    if slot is not None:
        return Placement(Layout.CAPSULE, slot)

    for layout, cls in (
        (Layout.SPOTLIGHT, DS_FLAGGED_CLASS),
        (Layout.TAB_ITEM, TAB_ITEM_CLASS),
        (Layout.SEARCH_RESULT, SEARCH_ROW_CLASS),
    ):
        anchor = closest_class(tile, cls)
        if anchor is not None:
            return Placement(layout, anchor)

    if _find_descendant(tile, lambda n: n.tag == "input" and n.get(ID_CONTROL_ATTR) is not None) is not None:
        img = next(tile.iterdescendants("img"), None)
        if img is not None and img.getparent() is not None:
            return Placement(Layout.WISHLIST, img.getparent())
    return None


# ---------------------------------------------------------------------------
# Decorator
# ---------------------------------------------------------------------------


class TileDecorator:
    """Idempotently applies the badge to tiles."""

    def __init__(self) -> None:
        self._applied: Counter[Layout] = Counter()

    @property
    def applied(self) -> Counter[Layout]:
        """Badges inserted so far, per layout."""
        return self._applied

    def decorate(self, tile: HtmlElement) -> bool:
        """Badge *tile* unless it (or its anchor) already has one.  Returns True if a badge was added."""
        if has_badge(tile):
            return False
        placement = detect_layout(tile)
        if placement is None:
            logger.debug("No layout matched for <%s class=%r>", tile.tag, tile.get("class"))
            return False
        if has_badge(placement.anchor):
            return False
        placement.anchor.append(make_badge(placement.layout))
        self._applied[placement.layout] += 1
        return True
