# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge. CLI: ConsoleRenderer, batch/worker runs: JSONRenderer.

Leaf module, no siteprofile imports. Safe to call early in startup.
"""

from __future__ import annotations

import logging
import os
import sys

import structlog

DEFAULT_LEVEL_ENV = "SITEPROFILE_LOG_LEVEL"

# per-statement DEBUG chatter from the database driver and the event loop
_QUIET_LOGGERS = ("aiosqlite", "asyncio")


def configure(*, json_output: bool = False, level: str | None = None) -> None:
    """Configure structlog with stdlib bridge.

    Args:
        json_output: True for JSON lines, False for human-readable console output.
        level: Root logger level. Defaults to $SITEPROFILE_LOG_LEVEL, then INFO.
    """
    level = level or os.environ.get(DEFAULT_LEVEL_ENV, "INFO")
    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

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
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_import_context(**values: str) -> None:
    """Bind per-import fields (business_id, url) onto every log line in this task."""
    structlog.contextvars.bind_contextvars(**values)


def clear_import_context() -> None:
    structlog.contextvars.clear_contextvars()
