# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""One-shot annotation of a storefront page.

Parses the HTML, runs the matching component to quiescence and returns
the decorated markup.  Detail pages (``/app/<id>/``) get the disclosure
banner; every other store page gets tile badges.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

import httpx
import structlog

from .banner import DisclosureBanner
from .config import BadgeConfig
from .document import DocumentTree
from .engine import BadgeEngine
from .store import InMemoryStore, KeyValueStore

_DETAIL_PATH_RE = re.compile(r"^/app/\d+")


def is_detail_page(url: str) -> bool:
    try:
        path = urlparse(url).path
    except ValueError:
        return False
    return _DETAIL_PATH_RE.match(path) is not None


async def annotate_html(
    html: str | bytes,
    *,
    client: httpx.AsyncClient,
    store: KeyValueStore | None = None,
    config: BadgeConfig | None = None,
    url: str = "",
) -> str:
    """Return *html* with badges (listing pages) or the banner (detail pages) applied."""
    tree = DocumentTree.from_html(html, url=url)
    with structlog.contextvars.bound_contextvars(page_url=url):
        if is_detail_page(url):
            banner = DisclosureBanner(tree, config)
            banner.check()
            return tree.to_html()

        engine = BadgeEngine(tree, client=client, store=store or InMemoryStore(), config=config)
        await engine.start()
        try:
            await engine.settle()
        finally:
            engine.close()
    return tree.to_html()
