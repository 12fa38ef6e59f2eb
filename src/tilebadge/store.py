# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Persistent key/value store abstraction.

Defines ``KeyValueStore``, the async get/set surface the cache store
consumes, and ``InMemoryStore`` for tests and throwaway sessions.
Values are the store's native JSON-compatible types (lists, numbers, str).

Pattern: runtime-checkable Protocol + concrete implementations;
``SqliteStore`` in ``store_sqlite.py`` is the durable one.
"""

from __future__ import annotations

import copy
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Interface for persistent slots — in-memory or SQLite."""

    async def get(self, key: str, default: Any = None) -> Any: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def close(self) -> None: ...


class InMemoryStore:
    """Dict-backed store.  Values are deep-copied in and out, like a real store."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._writes = 0

    async def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        self._writes += 1

    async def close(self) -> None:
        """No-op for in-memory store."""

    # ── Convenience accessors (not part of Protocol) ──────────────

    @property
    def data(self) -> dict[str, Any]:
        """Raw slot contents (testing/debugging)."""
        return self._data

    @property
    def writes(self) -> int:
        """Number of ``set`` calls so far."""
        return self._writes
