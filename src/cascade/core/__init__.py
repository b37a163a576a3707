"""
Core module: configuration, exceptions and logging.
"""

from cascade.core.config import CascadeConfig, DatabaseConfig, LoggingConfig
from cascade.core.exceptions import (
    CascadeError,
    ConfigurationError,
    DatabaseError,
    EntityNotFoundError,
    GraphIntegrityError,
    TaskError,
    ValidationError,
)
from cascade.core.logging import configure_logging, get_logger

__all__ = [
    "CascadeConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "CascadeError",
    "ConfigurationError",
    "DatabaseError",
    "EntityNotFoundError",
    "GraphIntegrityError",
    "TaskError",
    "ValidationError",
    "configure_logging",
    "get_logger",
]
