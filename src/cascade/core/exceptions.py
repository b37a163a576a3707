"""
Custom exceptions for Cascade.

Exception hierarchy:
- CascadeError (base)
  ├── DatabaseError
  │   └── EntityNotFoundError
  ├── TaskError
  │   └── GraphIntegrityError
  ├── ValidationError
  └── ConfigurationError

Expected outcomes of the scheduling core (a rejected dependency, a cycle,
an unknown id) are returned as values, never raised. These exceptions cover
the store, configuration and caller input.
"""

from typing import Any, Dict, Optional


class CascadeError(Exception):
    """Base exception for all Cascade errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def __str__(self) -> str:
        base_msg = self.message
        if self.error_code:
            base_msg = f"[{self.error_code}] {base_msg}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg = f"{base_msg} (Context: {context_str})"
        return base_msg


class DatabaseError(CascadeError):
    """Errors raised by the SQLite task store."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        query: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", None) or {}
        if table:
            context["table"] = table
        if query:
            context["query"] = query[:100] + "..." if len(query) > 100 else query
        super().__init__(message, context=context, **kwargs)


class EntityNotFoundError(DatabaseError):
    """A requested row does not exist."""

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[Any] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", None) or {}
        if entity_type:
            context["entity_type"] = entity_type
        if entity_id is not None:
            context["entity_id"] = entity_id
        super().__init__(message, context=context, **kwargs)


class TaskError(CascadeError):
    """Errors related to task management."""

    def __init__(
        self,
        message: str,
        task_id: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", None) or {}
        if task_id is not None:
            context["task_id"] = task_id
        super().__init__(message, context=context, **kwargs)


class GraphIntegrityError(TaskError):
    """Forward and reverse adjacency disagree. Always a programming defect."""


class ValidationError(CascadeError):
    """Invalid caller input."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", None) or {}
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)[:100]
        super().__init__(message, context=context, **kwargs)


class ConfigurationError(CascadeError):
    """Configuration could not be loaded or is invalid."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_file: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.pop("context", None) or {}
        if config_key:
            context["config_key"] = config_key
        if config_file:
            context["config_file"] = config_file
        super().__init__(message, context=context, **kwargs)
