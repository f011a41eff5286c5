"""Typed failures raised by the audit engine.

Every rejected mutation raises one of these with a message naming the
invariant that blocked it. Extra keyword context (counts, current status)
is carried through to the API error payload.
"""

from __future__ import annotations

from typing import Any


class AuditError(Exception):
    """Base class for all audit engine failures."""

    code: str = "audit_error"
    status_code: int = 400

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.code, "detail": self.message, **self.context}


class ValidationError(AuditError):
    """Malformed or out-of-range input."""

    code = "validation_error"
    status_code = 422


class PreconditionError(AuditError):
    """Operation not valid in the current state."""

    code = "precondition_failed"
    status_code = 409


class AuthorizationError(AuditError):
    """Actor lacks the capability or does not own the row."""

    code = "forbidden"
    status_code = 403


class ConflictError(AuditError):
    """Concurrent write lost, or exclusive resource already held."""

    code = "conflict"
    status_code = 409


class NotFoundError(AuditError):
    """Unknown session, verification or collaborator record."""

    code = "not_found"
    status_code = 404


class WarehouseFrozenError(ConflictError):
    """Ordinary ledger write attempted against a frozen warehouse."""

    code = "warehouse_frozen"
