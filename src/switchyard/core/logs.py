"""structlog setup."""

from __future__ import annotations

import logging

import structlog

from switchyard.core.config import get_config


def configure_logging(level: str | None = None, json: bool | None = None) -> None:
    """Configure structlog for the reconciler.

    Call once at startup. Arguments left out are taken from the
    configuration (``SWITCHYARD_LOG_LEVEL`` / ``SWITCHYARD_LOG_JSON``).

    Args:
        level: Minimum log level (debug, info, warning, error).
        json: Render events as JSON lines instead of console output.
    """
    config = get_config()
    level = config.log_level if level is None else level
    json = config.log_json if json is None else json

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        cache_logger_on_first_use=False,
    )
