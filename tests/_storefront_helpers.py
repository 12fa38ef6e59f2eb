# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared helper utilities for storefront test files.

Underscore prefix prevents pytest collection.
Plain utility functions and small fakes (not fixtures; conftest.py is
reserved for fixtures).
"""

from __future__ import annotations

import asyncio
import json

import httpx
import lxml.html

from tilebadge.config import BADGE_CLASS, BadgeConfig

BULK_URL = "https://lists.test/appids.json"
DETAIL_TEMPLATE = "https://store.test/app/{entry_id}/"
DISCLOSURE_PAGE = """<html><body><div id="game_area_content_descriptors">
<h2>AI Generated Content Disclosure</h2><p>The developers describe...</p>
<p>We use AI for voices.</p></div></body></html>"""
PLAIN_PAGE = "<html><body><h2>About this game</h2></body></html>"

DAY_MS = 24 * 60 * 60 * 1000


def make_config(**overrides) -> BadgeConfig:
    defaults = {
        "bulk_list_url": BULK_URL,
        "detail_url_template": DETAIL_TEMPLATE,
        "fetch_delay": 1.0,
        "scan_debounce": 0.01,
        "banner_debounce": 0.01,
        "navigation_debounce": 0.01,
    }
    defaults.update(overrides)
    return BadgeConfig(**defaults)


# ---------------------------------------------------------------------------
# Markup builders
# ---------------------------------------------------------------------------


def page(body: str) -> str:
    return f"<html><head><title>Store</title></head><body>{body}</body></html>"


def capsule_tile(app_id: str, *, with_attr: bool = False) -> str:
    attr = f' data-ds-appid="{app_id}"' if with_attr else ""
    return (
        f'<div class="_3r4Ny9tQdQZc50XDM5B2q2"{attr}>'
        f'<a href="https://store.test/app/{app_id}/Some_Game/"><img src="c.jpg"></a>'
        f'<div class="CapsuleDecorators"></div></div>'
    )


def spotlight_tile(app_id: str) -> str:
    return f'<div class="home_area_spotlight ds_flagged"><a href="/app/{app_id}/"><img src="s.jpg"></a></div>'


def tab_item(app_id: str) -> str:
    return f'<a class="tab_item" href="https://store.test/app/{app_id}/x/"><div class="tab_item_cap"></div></a>'


def search_row(app_id: str) -> str:
    return (
        f'<a class="search_result_row" data-ds-appid="{app_id}" href="https://store.test/app/{app_id}/y/">'
        f'<div class="search_capsule"><img src="r.jpg"></div></a>'
    )


def wishlist_panel(app_id: str) -> str:
    return (
        f'<div class="xYzPanel_1"><div><div class="img_wrap"><img src="w.jpg"></div>'
        f'<label><input type="checkbox" data-appid="{app_id}"></label></div></div>'
    )


def parse_tile(html: str) -> lxml.html.HtmlElement:
    """Parse a tile fragment inside a full document and return the tile element."""
    doc = lxml.html.document_fromstring(page(html))
    return doc.body[0]


def badge_count(el: lxml.html.HtmlElement) -> int:
    return sum(1 for n in el.iter() if BADGE_CLASS in (n.get("class") or "").split())


# ---------------------------------------------------------------------------
# Remote fakes
# ---------------------------------------------------------------------------


class FakeRemote:
    """httpx MockTransport backend: bulk list + detail pages, with a request log."""

    def __init__(
        self,
        *,
        bulk: list | None = None,
        bulk_status: int = 200,
        bulk_body: str | None = None,
        positives: set[str] | frozenset[str] = frozenset(),
        failing: set[str] | frozenset[str] = frozenset(),
    ) -> None:
        self.bulk = bulk if bulk is not None else []
        self.bulk_status = bulk_status
        self.bulk_body = bulk_body
        self.positives = set(positives)
        self.failing = set(failing)
        self.requests: list[str] = []
        self.events: list[tuple[str, str]] = []

    def detail_requests(self) -> list[str]:
        return [u for u in self.requests if "/app/" in u]

    def bulk_requests(self) -> list[str]:
        return [u for u in self.requests if u == BULK_URL]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        self.events.append(("fetch", url))
        if url == BULK_URL:
            if self.bulk_status != 200:
                return httpx.Response(self.bulk_status, text="error")
            body = self.bulk_body if self.bulk_body is not None else json.dumps(self.bulk)
            return httpx.Response(200, text=body)
        entry_id = url.rstrip("/").rsplit("/", 1)[-1]
        if entry_id in self.failing:
            raise httpx.ConnectError("connection refused", request=request)
        if entry_id in self.positives:
            return httpx.Response(200, text=DISCLOSURE_PAGE)
        return httpx.Response(200, text=PLAIN_PAGE)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that logs each delay into a shared event list."""

    def __init__(self, events: list[tuple[str, str]] | None = None) -> None:
        self.events = events if events is not None else []
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        self.events.append(("sleep", str(delay)))
        await asyncio.sleep(0)


class FakeClock:
    """Epoch-millisecond clock under test control."""

    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms
