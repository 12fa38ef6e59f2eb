# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for tilebadge.registry."""

from __future__ import annotations

import gc

import lxml.html

from tests._storefront_helpers import capsule_tile, page, search_row, tab_item
from tilebadge.registry import ProcessedSet, TileRegistry


def _doc():
    return lxml.html.document_fromstring(page(capsule_tile("1") + tab_item("1") + search_row("2")))


class TestTileRegistry:
    def test_fan_out_in_registration_order(self):
        doc = _doc()
        capsule, tab, row = doc.body
        reg = TileRegistry()
        reg.register("1", capsule)
        reg.register("2", row)
        reg.register("1", tab)
        assert reg.tiles_for("1") == [capsule, tab]
        assert reg.tiles_for("2") == [row]
        assert len(reg) == 2

    def test_unknown_id_is_empty(self):
        assert TileRegistry().tiles_for("404") == []

    def test_tiles_for_returns_copy(self):
        doc = _doc()
        reg = TileRegistry()
        reg.register("1", doc.body[0])
        reg.tiles_for("1").clear()
        assert len(reg.tiles_for("1")) == 1

    def test_contains(self):
        doc = _doc()
        reg = TileRegistry()
        reg.register("7", doc.body[0])
        reg.register("3", doc.body[1])
        assert "7" in reg
        assert "8" not in reg

    def test_detached_tile_tolerated(self):
        """A tile removed from the page stays registered and is still a valid handle."""
        doc = _doc()
        tile = doc.body[0]
        reg = TileRegistry()
        reg.register("1", tile)
        tile.drop_tree()
        assert reg.tiles_for("1") == [tile]
        assert tile.getparent() is None


class TestProcessedSet:
    def test_membership_by_identity(self):
        doc = _doc()
        seen = ProcessedSet()
        seen.add(doc.body[0])
        assert doc.body[0] in seen
        assert doc.body[1] not in seen
        assert len(seen) == 1

    def test_add_twice(self):
        doc = _doc()
        tile = doc.body[0]
        seen = ProcessedSet()
        seen.add(tile)
        seen.add(tile)
        assert len(seen) == 1

    def test_membership_survives_dropped_proxy(self):
        """Re-fetching a tile after the caller let go still finds it."""
        doc = _doc()
        seen = ProcessedSet()
        seen.add(doc.body[2])
        gc.collect()
        assert doc.body[2] in seen
        assert doc.body[0] not in seen

    def test_detached_member_kept(self):
        seen = ProcessedSet()
        tile = lxml.html.fragment_fromstring(tab_item("1"))
        seen.add(tile)
        tile.drop_tree()
        gc.collect()
        assert tile in seen
        assert len(seen) == 1
