# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
structlog setup for the command-line entry points.

Library code only ever calls structlog.get_logger(); this module decides
how those events are rendered when dumpvault runs as a program.
"""

import logging
import sys

import structlog

LOG_FORMATS = ("console", "json")


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """
    Configure structlog to write leveled, UTC-timestamped events to stderr.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        fmt: 'console' for human-readable lines, 'json' for log shippers
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
