"""Billing error taxonomy with context for logging and API responses."""

from typing import Any, Dict, Optional


class BillingError(Exception):
    """Base billing error with rich context."""

    http_status = 400
    error_code = "BILLING_ERROR"
    message = "A billing error occurred"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.error_code,
            "message": self.message,
            "context": self.context if self.context else None,
        }


class InvalidInputError(BillingError):
    """Malformed or out-of-range numeric input to a calculation."""
    http_status = 400
    error_code = "INVALID_INPUT"
    message = "Invalid input provided"


class PersistenceError(BillingError):
    """The database rejected an insert or update."""
    http_status = 500
    error_code = "PERSISTENCE_ERROR"
    message = "Could not persist billing data"


class MissingReferenceError(BillingError):
    """A referenced client, user or settings record no longer exists."""
    http_status = 404
    error_code = "MISSING_REFERENCE"
    message = "Referenced record not found"


class InvoiceStateError(BillingError):
    """Illegal invoice status transition."""
    http_status = 409
    error_code = "INVALID_STATE_TRANSITION"
    message = "Invoice cannot change to the requested state"
