"""Structured logging configuration.

Every ingest module logs snake_case events with keyword fields through
structlog. Output is one JSON object per line, filtered by level.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog

_configured_level: int | None = None


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog processors and the minimum emitted level.

    Args:
        level: Stdlib logging level, e.g. ``logging.DEBUG``.
    """
    global _configured_level
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
    _configured_level = level


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A lazy structlog logger that honors later reconfiguration.
    """
    if _configured_level is None:
        configure_logging()
    return structlog.get_logger(name)
