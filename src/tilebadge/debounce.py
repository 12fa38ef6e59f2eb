# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Trailing-edge debounce on the asyncio event loop.

Leaf module with no internal tilebadge dependencies.
Each ``trigger()`` cancels the pending call and schedules a new one
``wait`` seconds later, so a burst of notifications collapses into one
call that runs after the last notification of the burst.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger("tilebadge.debounce")


class TrailingDebounce:
    """Collapse bursts of ``trigger()`` calls into one trailing *callback* call.

    The callback is synchronous and runs on the event loop.  Exceptions it
    raises are logged and swallowed: a debounced callback is always fired
    from a notification path that must not see them.
    """

    def __init__(
        self,
        callback: Callable[[], object],
        wait: float,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        name: str = "",
    ) -> None:
        if wait < 0:
            raise ValueError(f"wait must be >= 0, got {wait}")
        self._callback = callback
        self._wait = wait
        self._loop = loop
        self._name = name or getattr(callback, "__qualname__", "callback")
        self._handle: asyncio.TimerHandle | None = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def wait(self) -> float:
        return self._wait

    @property
    def pending(self) -> bool:
        """True while a call is scheduled but has not fired yet."""
        return self._handle is not None

    def trigger(self, *_args: object) -> None:
        """(Re)schedule the callback.  Extra args are ignored so this can be a subscriber."""
        loop = self._loop or asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._idle.clear()
        self._handle = loop.call_later(self._wait, self._fire)

    def cancel(self) -> None:
        """Drop the pending call, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._idle.set()

    async def wait_idle(self) -> None:
        """Wait until no call is pending (fired or cancelled)."""
        await self._idle.wait()

    def _fire(self) -> None:
        self._handle = None
        try:
            self._callback()
        except Exception:
            logger.exception("Debounced %s failed", self._name)
        finally:
            if self._handle is None:
                self._idle.set()
