"""structlog setup shared by the CLI and embedding applications."""

from __future__ import annotations

import logging

import structlog

from marketfeed.config import LoggingConfig


def configure_logging(config: LoggingConfig) -> None:
    """Install the processor chain and level filter described by ``config``."""
    if config.log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    level = getattr(logging, config.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )
