# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import tilebadge  # noqa: F401
except ImportError:
    raise ImportError("tilebadge is not installed. Run: pip install -e '.[dev]'") from None

import httpx
import pytest

from tests._storefront_helpers import FakeClock, FakeRemote, make_config
from tilebadge.store import InMemoryStore


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def _block_real_network(monkeypatch):
    """Safety net: a test that builds a bare ``httpx.AsyncClient()`` gets a clear error, not a live request."""

    async def _no_network(self, request):
        raise RuntimeError(f"Test tried to reach the network: {request.url}. Use FakeRemote.client().")

    monkeypatch.setattr(httpx.AsyncHTTPTransport, "handle_async_request", _no_network)
