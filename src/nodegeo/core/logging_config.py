"""Structured logging setup."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from nodegeo.core.models.config import LogConfig


def configure_logging(config: LogConfig) -> None:
    """Configure stdlib logging and structlog from LogConfig."""
    level = getattr(logging, config.level)
    logging.basicConfig(level=level, stream=sys.stderr, format="%(message)s")

    renderer = (
        structlog.processors.JSONRenderer()
        if config.structured
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        # sys.stderr is looked up per logger, not once
        logger_factory=lambda *args: structlog.PrintLogger(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
