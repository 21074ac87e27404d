"""
Typed error taxonomy shared by every engine component.

Services raise only subclasses of ``EngineError``; the API layer turns them
into JSON responses with the error's ``status_code``.
"""
from typing import Any, Optional


class EngineError(Exception):
    status_code = 500
    error = "internal_error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message, **self.details}


class ValidationError(EngineError):
    """Malformed or missing input. The caller fixes it and retries."""
    status_code = 400
    error = "validation_error"


class NotFoundError(EngineError):
    status_code = 404
    error = "not_found"


class ConflictError(EngineError):
    """Scheduling overlap or a state change that would break an invariant."""
    status_code = 409
    error = "conflict"


class InsufficientSeatsError(EngineError):
    status_code = 409
    error = "insufficient_seats"

    def __init__(self, showtime_id, available: int, requested: int):
        super().__init__(
            f"Only {available} seat(s) left for this showtime, {requested} requested",
            {"showtime_id": str(showtime_id), "available": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class AlreadyCancelledError(EngineError):
    status_code = 409
    error = "already_cancelled"


class InternalError(EngineError):
    status_code = 500
    error = "internal_error"

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        reconciliation_needed: bool = False,
    ):
        details = dict(details or {})
        details["reconciliation_needed"] = reconciliation_needed
        super().__init__(message, details)
        self.reconciliation_needed = reconciliation_needed
