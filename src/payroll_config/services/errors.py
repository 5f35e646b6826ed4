"""Errors raised by the configuration lifecycle.

Every error is a terminal rejection of a single operation; nothing here is
retried.
"""

from __future__ import annotations

from typing import Any


class ConfigurationError(Exception):
    """Base class for configuration lifecycle failures."""

    code = "CONFIGURATION_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ConfigurationError):
    """Raised when an id does not resolve to a record."""

    code = "NOT_FOUND"

    def __init__(self, entity_label: str, record_id: Any):
        self.entity_label = entity_label
        self.record_id = record_id
        super().__init__(f"{entity_label} with id {record_id} not found")


class ConflictError(ConfigurationError):
    """Raised on a natural-key collision."""

    code = "CONFLICT"


class ReferenceInUseError(ConflictError):
    """Raised when a deletion is blocked by records referencing the target."""

    code = "IN_USE"


class InvalidStateError(ConfigurationError):
    """Raised when an operation is attempted outside its allowed status."""

    code = "INVALID_STATE"

    def __init__(self, current_status: str, operation: str, reason: str | None = None):
        self.current_status = current_status
        self.operation = operation
        msg = reason or f"Can only {operation} configurations in DRAFT status"
        super().__init__(f"{msg} (current: {current_status})")


class ValidationFailedError(ConfigurationError):
    """Raised when a field-level business rule is violated."""

    code = "VALIDATION_FAILED"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class UnknownEntityTypeError(ConfigurationError):
    """Raised for an entity type that is not registered."""

    code = "UNKNOWN_ENTITY_TYPE"

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        super().__init__(f"Unknown entity type: {entity_type}")
