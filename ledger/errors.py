"""
Ledger error taxonomy

Every Entity Store and Booking Lifecycle Engine operation either returns its
value or raises exactly one of the exceptions below. The HTTP layer maps them
onto responses through ``status_code``.
"""
from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base class for all ledger errors."""

    code = "LEDGER_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Error envelope used by the API layer"""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(LedgerError):
    """A referenced id does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, kind: str, entity_id: Any, key: str = "id"):
        self.kind = kind
        self.entity_id = entity_id
        message = f"{kind} {entity_id} not found" if key == "id" else f"{kind} with {key} {entity_id} not found"
        super().__init__(message, {"kind": kind, key: entity_id})


class ValidationFailedError(LedgerError):
    """A field-level constraint was violated."""

    code = "VALIDATION_FAILED"
    status_code = 422

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}", {"field": field})


class ForbiddenError(LedgerError):
    """The acting identity may not perform this action."""

    code = "FORBIDDEN"
    status_code = 403


class InvalidTransitionError(LedgerError):
    """The lifecycle change is not reachable from the current state."""

    code = "INVALID_TRANSITION"
    status_code = 409


class ConflictError(LedgerError):
    """A uniqueness constraint was violated."""

    code = "CONFLICT"
    status_code = 409

    def __init__(self, field: str, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(
            f"{field} already in use",
            {"field": field, "value": value},
        )


class InternalError(LedgerError):
    """Dangling reference or storage failure."""

    code = "INTERNAL"
    status_code = 500
