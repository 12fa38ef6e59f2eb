# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""tilebadge CLI: annotate, refresh, check commands.

Usage:
    python -m tilebadge.cli annotate PAGE.html [--url URL] [-o OUT.html] [--db PATH]
    python -m tilebadge.cli refresh [--db PATH]
    python -m tilebadge.cli check ENTRY_ID

Configuration comes from ``TILEBADGE_*`` environment variables
(see ``BadgeConfig.from_env``).
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import httpx

from .annotate import annotate_html
from .cache_store import CacheStore
from .config import BadgeConfig
from .errors import TileBadgeError
from .logging_config import configure
from .store import InMemoryStore, KeyValueStore
from .store_sqlite import SqliteStore
from .verification import DisclosureVerifier, Verdict

DEFAULT_DB_PATH = "~/.tilebadge/slots.db"
_USER_AGENT = "tilebadge/0.1"


def _make_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(30.0),
        headers={"User-Agent": _USER_AGENT},
    )


async def _open_store(db: str | None) -> KeyValueStore:
    if not db:
        return InMemoryStore()
    return await SqliteStore.create(db)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _annotate(args: argparse.Namespace, config: BadgeConfig) -> None:
    html = Path(args.page).read_bytes()
    store = await _open_store(args.db)
    try:
        async with _make_client() as client:
            out = await annotate_html(html, client=client, store=store, config=config, url=args.url or "")
    finally:
        await store.close()
    if args.output:
        Path(args.output).write_text(out, encoding="utf-8")
        print(f"Saved to {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(out)


async def _refresh(args: argparse.Namespace, config: BadgeConfig) -> None:
    store = await _open_store(args.db)
    try:
        async with _make_client() as client:
            cache = CacheStore(store, client, config)
            known = await cache.load_known_positives()
    finally:
        await store.close()
    print(f"{len(known)} known-positive id(s) (source: {cache.stats.last_source})")


async def _check(args: argparse.Namespace, config: BadgeConfig) -> bool:
    async with _make_client() as client:
        verdict = await DisclosureVerifier(client, config).verify(args.entry_id)
    print(f"{args.entry_id}: {verdict.value}")
    return verdict is Verdict.POSITIVE


def cmd_annotate(args: argparse.Namespace, config: BadgeConfig) -> None:
    """Badge a saved storefront page."""
    if not Path(args.page).is_file():
        print(f"Error: no such file: {args.page}", file=sys.stderr)
        sys.exit(1)
    asyncio.run(_annotate(args, config))


def cmd_refresh(args: argparse.Namespace, config: BadgeConfig) -> None:
    """Load the known-positive list, fetching it if the cached copy expired."""
    asyncio.run(_refresh(args, config))


def cmd_check(args: argparse.Namespace, config: BadgeConfig) -> None:
    """Verify one entry against its detail page.  Exit status 0 only if positive."""
    if not args.entry_id.isdigit():
        print(f"Error: entry id must be numeric, got {args.entry_id!r}", file=sys.stderr)
        sys.exit(2)
    if not asyncio.run(_check(args, config)):
        sys.exit(1)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="tilebadge CLI",
        prog="python -m tilebadge.cli",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_annotate = subparsers.add_parser(
        "annotate",
        help="Badge tiles (or add the disclosure banner) in a saved page",
        epilog="""\
examples:
  %(prog)s home.html -o home.badged.html
  %(prog)s app.html --url https://store.steampowered.com/app/570/""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p_annotate.add_argument("page", metavar="PAGE", help="HTML file to annotate")
    p_annotate.add_argument("--url", type=str, metavar="URL", help="Page URL (selects detail-page mode)")
    p_annotate.add_argument("-o", "--output", type=str, metavar="PATH", help="Write to file instead of stdout")
    p_annotate.add_argument("--db", type=str, default=DEFAULT_DB_PATH, metavar="PATH", help="Cache database")

    p_refresh = subparsers.add_parser("refresh", help="Load or refresh the known-positive list")
    p_refresh.add_argument("--db", type=str, default=DEFAULT_DB_PATH, metavar="PATH", help="Cache database")

    p_check = subparsers.add_parser("check", help="Verify one entry against its detail page")
    p_check.add_argument("entry_id", metavar="ENTRY_ID")

    args = parser.parse_args(argv)
    configure(json_output=args.json_logs, level="DEBUG" if args.verbose else "WARNING")

    commands = {"annotate": cmd_annotate, "refresh": cmd_refresh, "check": cmd_check}
    try:
        config = BadgeConfig.from_env()
        commands[args.command](args, config)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except TileBadgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
