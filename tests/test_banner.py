# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for tilebadge.banner: detail-page disclosure banner."""

from __future__ import annotations

import lxml.html
import pytest

from tests._storefront_helpers import DISCLOSURE_PAGE, PLAIN_PAGE, make_config
from tilebadge.banner import DisclosureBanner
from tilebadge.config import BANNER_ELEMENT_ID
from tilebadge.document import DocumentTree

_BLOCK = (
    '<div id="game_area_content_descriptors">'
    "<h2>AI Generated Content Disclosure</h2>"
    "<p>The developers describe how their game uses AI Generated Content like this:</p>"
    "<p>Voices are <i>synthesised</i>.</p></div>"
)


def _detail_page(*, title: bool = True, content: bool = True, block: str = _BLOCK) -> DocumentTree:
    head = '<div class="apphub_HomeHeader"><div id="appHubAppName" class="apphub_AppName">Game</div></div>'
    inner = (head if title else "") + block
    body = f'<div id="page_content">{inner}</div>' if content else inner
    return DocumentTree.from_html(f"<html><head></head><body>{body}</body></html>", url="https://store.test/app/1/")


def _banners(tree: DocumentTree) -> list:
    return [el for el in tree.root.iter() if el.get("id") == BANNER_ELEMENT_ID]


class TestFindDisclosure:
    def test_marker_and_description(self):
        disclosed, description = DisclosureBanner(_detail_page(), make_config()).find_disclosure()
        assert disclosed
        assert description.text_content() == "Voices are synthesised."

    def test_no_block(self):
        assert DisclosureBanner(DocumentTree.from_html(PLAIN_PAGE)).find_disclosure() == (False, None)

    def test_other_heading(self):
        block = '<div id="game_area_content_descriptors"><h2>Mature Content Description</h2><p>a</p><p>b</p></div>'
        disclosed, _ = DisclosureBanner(_detail_page(block=block)).find_disclosure()
        assert not disclosed

    def test_marker_without_description(self):
        block = '<div id="game_area_content_descriptors"><h2>AI Generated Content Disclosure</h2><p>only</p></div>'
        assert DisclosureBanner(_detail_page(block=block)).find_disclosure() == (True, None)


class TestCheck:
    def test_banner_inserted_above_title(self):
        tree = _detail_page()
        assert DisclosureBanner(tree, make_config()).check() is True
        bar = tree.get_element_by_id(BANNER_ELEMENT_ID)
        assert bar is not None
        assert bar.getparent().get("class") == "apphub_HomeHeader"
        assert bar.getparent()[0] is bar

    def test_banner_content(self):
        tree = _detail_page()
        DisclosureBanner(tree, make_config()).check()
        bar = tree.get_element_by_id(BANNER_ELEMENT_ID)
        heading, text = bar
        assert heading.text == "⚠️ AI Generated Content Disclosure"
        assert text.text_content() == "Voices are synthesised."
        assert text.find("i") is not None

    def test_description_copied_not_moved(self):
        tree = _detail_page()
        DisclosureBanner(tree).check()
        block = tree.get_element_by_id("game_area_content_descriptors")
        assert len(list(block.iter("i"))) == 1

    def test_singleton(self):
        tree = _detail_page()
        banner = DisclosureBanner(tree)
        banner.check()
        banner.check()
        assert len(_banners(tree)) == 1

    def test_no_disclosure_no_banner(self):
        tree = DocumentTree.from_html(PLAIN_PAGE)
        assert DisclosureBanner(tree).check() is False
        assert _banners(tree) == []

    def test_falls_back_to_page_content(self):
        tree = _detail_page(title=False)
        DisclosureBanner(tree).check()
        assert tree.get_element_by_id("page_content")[0].get("id") == BANNER_ELEMENT_ID

    def test_falls_back_to_body(self):
        tree = _detail_page(title=False, content=False)
        DisclosureBanner(tree).check()
        assert tree.body[0].get("id") == BANNER_ELEMENT_ID

    def test_shared_page_fixture(self):
        tree = DocumentTree.from_html(DISCLOSURE_PAGE)
        assert DisclosureBanner(tree).check() is True
        assert tree.get_element_by_id(BANNER_ELEMENT_ID).text_content().endswith("We use AI for voices.")

    def test_removed_when_block_gone(self):
        tree = _detail_page()
        banner = DisclosureBanner(tree)
        banner.check()
        tree.get_element_by_id("game_area_content_descriptors").drop_tree()
        assert banner.check() is False
        assert _banners(tree) == []


class TestWatch:
    @pytest.mark.asyncio
    async def test_navigation_away_removes_banner(self):
        tree = _detail_page()
        banner = DisclosureBanner(tree, make_config())
        banner.watch()
        assert banner.element is not None

        tree.remove(tree.get_element_by_id("game_area_content_descriptors"))
        await banner.settle()
        assert banner.element is None
        banner.close()
        assert tree.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_navigation_hook_rechecks(self):
        tree = _detail_page()
        banner = DisclosureBanner(tree, make_config())
        banner.watch()
        # content swapped without a tree notification, then a history event
        tree.get_element_by_id("game_area_content_descriptors").drop_tree()
        banner.notify_navigation()
        await banner.settle()
        assert banner.element is None
        banner.close()

    @pytest.mark.asyncio
    async def test_disclosure_appearing_later(self):
        tree = _detail_page(block="")
        banner = DisclosureBanner(tree, make_config())
        banner.watch()
        assert banner.element is None
        tree.append(tree.get_element_by_id("page_content"), lxml.html.fragment_fromstring(_BLOCK))
        await banner.settle()
        assert banner.element is not None
        banner.close()

    @pytest.mark.asyncio
    async def test_watch_twice_single_subscription(self):
        tree = _detail_page()
        banner = DisclosureBanner(tree, make_config())
        banner.watch()
        banner.watch()
        assert tree.subscriber_count == 1
        banner.close()
