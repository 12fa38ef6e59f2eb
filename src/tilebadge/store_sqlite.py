# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SQLite-backed key/value store — durable slots for the identifier cache.

Uses ``aiosqlite`` with a single long-lived connection.  WAL journal mode;
schema versioned via ``PRAGMA user_version``.  Values are stored as JSON
text so lists and numbers round-trip as their native Python types.

Dependencies: store.py (KeyValueStore), errors.py (StoreError).
"""

from __future__ import annotations

import json
import sqlite3
import time
from contextlib import suppress
from pathlib import Path
from typing import Any

import aiosqlite

from .errors import StoreError

_SCHEMA_VERSION = 1

_CREATE_SLOTS = """
CREATE TABLE IF NOT EXISTS slots (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at REAL NOT NULL
)
"""


class SqliteStore:
    """SQLite-backed store implementing ``KeyValueStore``.

    Use the ``create()`` async classmethod factory — never instantiate directly.
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    @classmethod
    async def create(cls, db_path: str | Path) -> SqliteStore:
        """Open (or create) a SQLite database and initialise the schema.

        Resolves ``~`` and creates parent directories automatically.

        Raises:
            StoreError: If the database cannot be opened or has a newer schema.
        """
        path = Path(db_path).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)

        try:
            db = await aiosqlite.connect(str(path))
        except sqlite3.Error as e:
            raise StoreError(f"cannot open {path}: {e}") from e
        try:
            await db.execute("PRAGMA journal_mode = WAL")

            cursor = await db.execute("PRAGMA user_version")
            row = await cursor.fetchone()
            current_version = row[0] if row else 0

            if current_version > _SCHEMA_VERSION:
                raise StoreError(
                    f"Database schema version {current_version} is newer than supported version {_SCHEMA_VERSION}"
                )

            if current_version < _SCHEMA_VERSION:
                await db.execute(_CREATE_SLOTS)
                await db.execute(f"PRAGMA user_version = {_SCHEMA_VERSION}")
                await db.commit()
        except sqlite3.Error as e:
            await db.close()
            raise StoreError(f"cannot initialise {path}: {e}") from e
        except BaseException:
            await db.close()
            raise

        return cls(db)

    # ── KeyValueStore methods ─────────────────────────────────────

    async def get(self, key: str, default: Any = None) -> Any:
        """Return the decoded value for *key*, or *default* if unset."""
        try:
            cursor = await self._db.execute("SELECT value FROM slots WHERE key = ?", (key,))
            row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"read {key!r} failed: {e}") from e
        if row is None:
            return default
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise StoreError(f"slot {key!r} holds undecodable data") from e

    async def set(self, key: str, value: Any) -> None:
        """Store or replace *value* under *key*."""
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO slots (key, value, updated_at) VALUES (?, ?, ?)",
                (key, json.dumps(value), time.time()),
            )
            await self._db.commit()
        except sqlite3.Error as e:
            raise StoreError(f"write {key!r} failed: {e}") from e

    async def close(self) -> None:
        """Close the database connection. Idempotent."""
        with suppress(Exception):
            await self._db.close()
