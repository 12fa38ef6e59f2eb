# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Rate-limited, deduplicated detail-page verification.

``DisclosureVerifier`` fetches one entry's detail page and looks for the
disclosure marker phrase.  ``VerificationQueue`` feeds it one id at a
time with a fixed delay after every fetch, whatever the outcome, so the
target host never sees more than one request in flight or a burst.

Design choices:

- **Single consumer** — an explicit ``while`` loop over a deque, not
  self-rescheduling callbacks; ``draining`` is a plain attribute.
- **Session dedup** — an id enters the guard on first enqueue and never
  leaves it.  Failures are inconclusive, not negative, and are not retried.
- **No cancellation** — an in-flight fetch runs until the client fails it.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

import httpx

from .config import BadgeConfig

logger = logging.getLogger("tilebadge.verification")


class Verdict(StrEnum):
    POSITIVE = "positive"
    INCONCLUSIVE = "inconclusive"  # marker absent, non-200, or transport failure


# ---------------------------------------------------------------------------
# Verifier
# ---------------------------------------------------------------------------


class DisclosureVerifier:
    """One GET per id; positive iff HTTP 200 and the marker phrase appears."""

    def __init__(self, client: httpx.AsyncClient, config: BadgeConfig | None = None) -> None:
        self._client = client
        self._config = config or BadgeConfig()
        self._marker = re.compile(re.escape(self._config.marker_phrase), re.IGNORECASE)

    def has_marker(self, text: str) -> bool:
        return self._marker.search(text) is not None

    async def verify(self, entry_id: str) -> Verdict:
        url = self._config.detail_url(entry_id)
        try:
            res = await self._client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Verification fetch failed for %s: %r", entry_id, e)
            return Verdict.INCONCLUSIVE
        if res.status_code != 200:
            logger.debug("Verification of %s got status %d", entry_id, res.status_code)
            return Verdict.INCONCLUSIVE
        verdict = Verdict.POSITIVE if self.has_marker(res.text) else Verdict.INCONCLUSIVE
        logger.debug("Verified %s: %s", entry_id, verdict.value)
        return verdict


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------


@dataclass
class QueueStats:
    """Counters for queue behaviour — used for logging and tests."""

    enqueued: int = 0
    duplicates: int = 0
    fetched: int = 0
    positives: int = 0
    inconclusive: int = 0
    errors: int = 0


class VerificationQueue:
    """Ordered, deduplicated, one-at-a-time verification pipeline.

    Usage::

        queue = VerificationQueue(verifier.verify, on_positive, delay=1.0)
        queue.enqueue("570")
        queue.start()        # background drain task
        await queue.join()
    """

    def __init__(
        self,
        verify: Callable[[str], Awaitable[Verdict]],
        on_positive: Callable[[str], object],
        *,
        delay: float = 1.0,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self._verify = verify
        self._on_positive = on_positive
        self._delay = delay
        self._sleep = sleep
        self._pending: deque[str] = deque()
        self._guard: set[str] = set()
        self._draining = False
        self._task: asyncio.Task | None = None
        self._stats = QueueStats()

    # -- State --

    @property
    def draining(self) -> bool:
        return self._draining

    @property
    def pending(self) -> int:
        return len(self._pending)

    def seen(self, entry_id: str) -> bool:
        """True if *entry_id* was ever enqueued this session."""
        return entry_id in self._guard

    @property
    def stats(self) -> QueueStats:
        return self._stats

    # -- Public API --

    def enqueue(self, entry_id: str) -> bool:
        """Queue *entry_id* unless it was queued before.  Returns True if added."""
        if entry_id in self._guard:
            self._stats.duplicates += 1
            return False
        self._guard.add(entry_id)
        self._pending.append(entry_id)
        self._stats.enqueued += 1
        return True

    async def drain(self) -> int:
        """Process pending ids to exhaustion.  No-op if already draining.

        The delay follows every fetch, including the last, and ``draining``
        stays set through it, so a later drain cannot fetch early.
        Returns the number of ids processed by this call.
        """
        if self._draining or not self._pending:
            return 0
        self._draining = True
        processed = 0
        try:
            while self._pending:
                entry_id = self._pending.popleft()
                await self._check(entry_id)
                processed += 1
                await self._sleep(self._delay)
        finally:
            self._draining = False
        if processed:
            logger.debug("Drained %d id(s)", processed)
        return processed

    def start(self) -> asyncio.Task | None:
        """Schedule ``drain()`` in the background unless a drain is running or nothing is pending."""
        if self._task is not None and not self._task.done():
            return self._task
        if self._draining or not self._pending:
            return None
        self._task = asyncio.get_running_loop().create_task(self.drain())
        self._task.add_done_callback(self._drain_done)
        return self._task

    async def join(self) -> None:
        """Wait for the background drain task, if any, to finish."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    # -- Internal --

    async def _check(self, entry_id: str) -> None:
        self._stats.fetched += 1
        try:
            verdict = await self._verify(entry_id)
        except Exception:
            self._stats.errors += 1
            logger.exception("Verifier raised for %s", entry_id)
            return
        if verdict is not Verdict.POSITIVE:
            self._stats.inconclusive += 1
            return
        self._stats.positives += 1
        try:
            self._on_positive(entry_id)
        except Exception:
            logger.exception("Positive handler failed for %s", entry_id)

    def _drain_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Verification drain crashed: %r", exc)
