"""
structlog configuration for applications embedding the codec.

Library modules only call `structlog.get_logger()`; nothing here runs on
import. An application (or a test) calls `configure_structlog` once:

    settings = get_settings()
    configure_structlog(settings.logging.level, settings.logging.render_json)
"""

from __future__ import annotations

import logging

import structlog


def configure_structlog(log_level: str = "INFO", render_json: bool = False) -> None:
    """
    Configure structlog for structured logging.

    In production: JSON lines to stdout (machine-readable).
    In development: colored, human-readable console output.
    """
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if render_json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
