"""Errors raised by ``RecordService`` and turned into HTTP responses.

The API layer renders every one of them as ``{"error": message}`` with the
class's ``status_code``. ``detail`` is logged, never sent: for a blocked
delete it holds the structured ``references`` behind the message.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ServiceError(Exception):
    status_code: int = 400
    error_code: str = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        detail: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code


class ValidationError(ServiceError):
    """Body failed its entity schema, or a path parameter is malformed."""


class NotFoundError(ServiceError):
    """No ``{Label}`` with the requested id."""

    status_code = 404
    error_code = "not_found"


class ConflictError(ServiceError):
    """Write refused by a constraint, or a delete blocked by dependent records."""

    status_code = 409
    error_code = "conflict"

    @property
    def references(self) -> List[Dict[str, str]]:
        return list(self.detail.get("references", []))


class ServerError(ServiceError):
    """Store failure outside the constraint family; the message is passed through."""

    status_code = 500
    error_code = "server_error"


__all__ = [
    "ConflictError",
    "NotFoundError",
    "ServerError",
    "ServiceError",
    "ValidationError",
]
