# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge for the tilebadge CLI and embedding hosts.

Everything goes to stderr: ``annotate`` writes the badged page to stdout,
and a log line there would corrupt the document.  Module loggers stay
plain stdlib (``logging.getLogger("tilebadge.engine")``) and are rendered
through ``ProcessorFormatter``.

Console mode is for a person watching a run: short wall-clock stamps,
colour only when stderr is a terminal.  JSON mode is one object per line
with ISO timestamps, for piping a long ``refresh``/``annotate`` batch into
a collector.
"""

from __future__ import annotations

import logging
import sys

import structlog

_HTTP_LOGGERS = ("httpx", "httpcore")


def _renderer(json_output: bool, stream) -> structlog.typing.Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    colors = hasattr(stream, "isatty") and stream.isatty()
    return structlog.dev.ConsoleRenderer(colors=colors)


def configure(*, json_output: bool = False, level: str = "INFO", quiet_http: bool = True) -> None:
    """Install one stderr handler on the root logger.  Safe to call repeatedly.

    Args:
        json_output: JSON lines instead of console output.
        level: Root logger level name; unknown names fall back to INFO.
        quiet_http: Raise the httpx/httpcore loggers to WARNING.
    """
    stream = sys.stderr
    timestamper = structlog.processors.TimeStamper(fmt="iso" if json_output else "%H:%M:%S")
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        timestamper,
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        # console mode lets ConsoleRenderer print the traceback itself
        shared_processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(json_output, stream),
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # httpx logs every request at INFO; one line per verified tile is noise
    if quiet_http:
        for name in _HTTP_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
