"""
Engine error taxonomy

Every failure the reservation engine reports to callers is one of these.
The DRF exception handler renders them as::

    {"error": {"code": ..., "message": ..., "details": {...}, "retryable": ...}}
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class EngineError(Exception):
    """Base class for reservation engine failures."""

    status_code = 400
    default_code = "ENGINE_ERROR"
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        retryable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        if retryable is not None:
            self.retryable = retryable

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "retryable": self.retryable,
            }
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(EngineError):
    """Malformed input: bad dates, guest counts, hours out of bounds."""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(EngineError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(EngineError):
    """
    Capacity conflict detected inside the reservation transaction.

    ``code`` is SOLD_OUT or CLOSED for inventory conflicts and carries the
    offending date; IDEMPOTENCY_KEY_REUSED when a key is replayed with a
    different request body.
    """

    status_code = 409
    default_code = "SOLD_OUT"
    retryable = True

    SOLD_OUT = "SOLD_OUT"
    CLOSED = "CLOSED"
    IDEMPOTENCY_KEY_REUSED = "IDEMPOTENCY_KEY_REUSED"

    @classmethod
    def for_date(cls, code: str, day, slot: Optional[str] = None) -> "ConflictError":
        details: Dict[str, Any] = {"date": day.isoformat()}
        if slot:
            details["slot"] = slot
        label = "sold out" if code == cls.SOLD_OUT else "closed"
        return cls(f"Room type is {label} on {day.isoformat()}", code=code, details=details)


class StateError(EngineError):
    """Illegal lifecycle transition."""

    status_code = 409
    default_code = "INVALID_STATE"


class GatewayError(EngineError):
    """Payment gateway was unreachable or rejected the call."""

    status_code = 502
    default_code = "GATEWAY_ERROR"
    retryable = True
