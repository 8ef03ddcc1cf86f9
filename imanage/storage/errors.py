from __future__ import annotations

from typing import Any, Dict, Optional


class StoreError(Exception):
    """Base class for failures raised by an entity store."""

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class RecordNotFound(StoreError):
    """Raised when the addressed row does not exist."""


class ConstraintViolation(StoreError):
    """Raised when a storage-layer uniqueness or FK constraint is violated."""


class ForeignKeyViolation(ConstraintViolation):
    """A write or delete would leave a dangling foreign-key reference."""


class UniqueViolation(ConstraintViolation):
    """A write would duplicate a unique column."""


class NotNullViolation(ConstraintViolation):
    """A required column was left empty."""


class DeleteBlocked(ConstraintViolation):
    """The store refused a delete and already worded the reason for end users.

    The message is passed to the caller as-is; no reference lookup is needed.
    """


__all__ = [
    "StoreError",
    "RecordNotFound",
    "ConstraintViolation",
    "ForeignKeyViolation",
    "UniqueViolation",
    "NotNullViolation",
    "DeleteBlocked",
]
