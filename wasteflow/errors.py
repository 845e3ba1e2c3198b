"""Error kinds raised by the process store and lifecycle engine.

Every error is deterministic for a given input and scoped to a single
invocation. The API layer maps each kind to its own HTTP status code.
"""

from __future__ import annotations

from typing import Any


class WasteflowError(Exception):
    """Base class for all domain errors."""


class NotFoundError(WasteflowError):
    """The target process (or user) does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity.capitalize()} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ForbiddenError(WasteflowError):
    """The caller's role does not permit the requested change."""

    def __init__(self, message: str, fields: frozenset[str] = frozenset()):
        super().__init__(message)
        self.fields = fields


class ValidationError(WasteflowError):
    """Malformed or out-of-range input.

    ``field`` names the offending input when there is a single one; ``errors``
    carries per-field details (pydantic's error list when validation came
    from a schema).
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ):
        super().__init__(message)
        self.field = field
        self.errors = errors or []


class InvalidTransitionError(ValidationError):
    """A lifecycle action was requested from a state that does not allow it."""

    def __init__(self, action: str, status: str):
        super().__init__(
            f"Cannot {action.replace('_', ' ')} a process in status '{status}'",
            field="status",
        )
        self.action = action
        self.status = status


class StorageError(WasteflowError):
    """The persistence layer failed (unavailable database, broken schema, ...)."""


class AuthenticationError(WasteflowError):
    """No caller identity was supplied."""
