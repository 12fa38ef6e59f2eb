# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Disclosure banner for an entry's own detail page.

When the page's content-descriptor block is headed by the disclosure
marker phrase, a singleton ``#tm-ai-label`` banner is kept at the top of
the page, quoting the developer's disclosure text.  When the block goes
away (in-page navigation), the banner is removed.  Re-checks run on
debounced tree changes and on history navigation.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import re

from lxml.html import HtmlElement

from .config import BANNER_ELEMENT_ID, BadgeConfig
from .debounce import TrailingDebounce
from .document import DocumentTree, Subscription
from .locator import has_class

logger = logging.getLogger("tilebadge.banner")

DESCRIPTOR_BLOCK_ID = "game_area_content_descriptors"
TITLE_ID = "appHubAppName"
TITLE_CLASS = "apphub_AppName"
PAGE_CONTENT_ID = "page_content"
PAGE_CONTENT_CLASS = "responsive_page_template_content"

_BAR_STYLE = (
    "background: #ff6b6b; color: #fff; padding: 12px 16px; font-size: 15px; font-weight: 600; "
    "text-align: center; border-radius: 6px; margin-bottom: 10px; "
    "box-shadow: 0 2px 6px rgba(0,0,0,0.2); z-index: 9999;"
)


def _first_with_class(tree: DocumentTree, name: str) -> HtmlElement | None:
    for el in tree.root.iter():
        if isinstance(el, HtmlElement) and has_class(el, name):
            return el
    return None


class DisclosureBanner:
    """Keeps the detail-page banner in sync with the page's disclosure block."""

    def __init__(self, tree: DocumentTree, config: BadgeConfig | None = None) -> None:
        self._tree = tree
        self._config = config or BadgeConfig()
        self._marker = re.compile(re.escape(self._config.marker_phrase), re.IGNORECASE)
        self._change_debounce: TrailingDebounce | None = None
        self._nav_debounce: TrailingDebounce | None = None
        self._subscription: Subscription | None = None

    @property
    def element(self) -> HtmlElement | None:
        return self._tree.get_element_by_id(BANNER_ELEMENT_ID)

    def find_disclosure(self) -> tuple[bool, HtmlElement | None]:
        """(page discloses?, developer description paragraph if present)."""
        block = self._tree.get_element_by_id(DESCRIPTOR_BLOCK_ID)
        if block is None:
            return False, None
        header = next(block.iter("h2"), None)
        if header is None or not self._marker.search(header.text_content()):
            return False, None
        paragraphs = list(block.iter("p"))
        # first paragraph is the generic notice, the second is the developer's text
        return True, (paragraphs[1] if len(paragraphs) > 1 else None)

    def check(self) -> bool:
        """Add or remove the banner to match the page.  Returns True if the banner is shown."""
        try:
            disclosed, description = self.find_disclosure()
            if not disclosed:
                self.remove()
                return False
            self._add(description)
            return True
        except Exception:
            logger.exception("Banner check failed")
            return False

    def remove(self) -> None:
        bar = self.element
        if bar is not None:
            bar.drop_tree()

    # -- Watching --

    def watch(self) -> None:
        """Check now, then re-check on debounced tree changes and navigation events."""
        if self._subscription is not None:
            return
        loop = asyncio.get_running_loop()
        self.check()
        self._change_debounce = TrailingDebounce(self.check, self._config.banner_debounce, loop=loop, name="banner")
        self._nav_debounce = TrailingDebounce(self.check, self._config.navigation_debounce, loop=loop, name="nav")
        self._subscription = self._tree.subscribe(self._change_debounce.trigger)

    def notify_navigation(self) -> None:
        """Host hook for popstate / pushstate / replacestate."""
        if self._nav_debounce is not None:
            self._nav_debounce.trigger()

    async def settle(self) -> None:
        for debounce in (self._change_debounce, self._nav_debounce):
            if debounce is not None:
                await debounce.wait_idle()

    def close(self) -> None:
        for debounce in (self._change_debounce, self._nav_debounce):
            if debounce is not None:
                debounce.cancel()
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    # -- Internal --

    def _add(self, description: HtmlElement | None) -> None:
        if self.element is not None:
            return
        root = self._tree.root
        bar = root.makeelement("div", {"id": BANNER_ELEMENT_ID, "style": _BAR_STYLE})
        heading = bar.makeelement("div", {"style": "font-size:18px; margin-bottom:6px;"})
        heading.text = f"⚠️ {self._config.marker_phrase}"
        bar.append(heading)
        body = bar.makeelement("div", {"style": "font-weight:400;"})
        if description is not None:
            body.text = description.text
            for child in description:
                body.append(copy.deepcopy(child))
        bar.append(body)

        title = self._tree.get_element_by_id(TITLE_ID)
        if title is None:
            title = _first_with_class(self._tree, TITLE_CLASS)
        if title is not None and title.getparent() is not None:
            title.getparent().insert(0, bar)
            return

        # lxml elements are falsy when childless; compare with None explicitly
        for container in (
            self._tree.get_element_by_id(PAGE_CONTENT_ID),
            _first_with_class(self._tree, PAGE_CONTENT_CLASS),
            self._tree.body,
            root,
        ):
            if container is not None:
                container.insert(0, bar)
                return
