"""Structured logging utilities."""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

import structlog

from cascade.core.config import LoggingConfig

_LOGGER_NAME = "cascade"


def configure_logging(config: Optional[LoggingConfig] = None, stream: Optional[TextIO] = None) -> None:
    """Configure structlog from the logging settings.

    Log lines go to stderr so command output on stdout stays clean.
    """
    config = config or LoggingConfig()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
    ]

    if config.include_timestamps:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if config.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.level)
        ),
        logger_factory=structlog.WriteLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(component: Optional[str] = None) -> "structlog.stdlib.BoundLogger":
    """Return a structlog logger bound to the Cascade namespace."""
    logger = structlog.get_logger(_LOGGER_NAME)
    if component:
        logger = logger.bind(component=component)
    return logger


__all__ = ["configure_logging", "get_logger"]
