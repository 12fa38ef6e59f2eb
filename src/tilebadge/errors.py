# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""tilebadge exception hierarchy.

All tilebadge-specific errors inherit from TileBadgeError.  None of them
ever escape into the host document: the engine catches them at its
boundaries, logs, and degrades to showing fewer badges.
"""

from __future__ import annotations


class TileBadgeError(Exception):
    """Base exception for all tilebadge errors."""


class ConfigError(TileBadgeError, ValueError):
    """Invalid configuration value."""


class TransportError(TileBadgeError):
    """A remote fetch did not complete (connection failure, non-200 status)."""

    def __init__(self, message: str, *, url: str = "", status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class MalformedPayloadError(TileBadgeError):
    """The bulk identifier list could not be parsed."""


class StoreError(TileBadgeError):
    """Persistent key/value store read or write failure."""
