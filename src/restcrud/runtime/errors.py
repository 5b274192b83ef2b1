"""
Exception types raised by the restcrud runtime.

Delegated model failures are never wrapped: they reach the application's
exception handlers unchanged. The types here cover the failures the
runtime itself detects.
"""

from __future__ import annotations

from typing import Any


class CrudError(Exception):
    """Base class for restcrud errors."""


class UnknownActionTypeError(CrudError, ValueError):
    """Raised at router construction when an action type is not recognised."""

    def __init__(self, action_type: Any):
        self.action_type = action_type
        super().__init__(f"Unknown action type {action_type}")


class InvalidQueryParameterError(CrudError, ValueError):
    """Raised when a list query parameter is not the expected JSON shape."""

    def __init__(self, parameter: str, message: str):
        self.parameter = parameter
        super().__init__(f"Invalid '{parameter}' parameter: {message}")


class InvalidRequestBodyError(CrudError, ValueError):
    """Raised when a create/update body is not a JSON object of field values."""


class ConstraintViolationError(CrudError):
    """Raised when a database constraint (unique, FK, not null) is violated."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        constraint_type: str = "integrity",
    ):
        self.field = field
        self.constraint_type = constraint_type  # "unique" | "foreign_key" | "not_null"
        super().__init__(message)
