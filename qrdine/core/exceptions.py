"""
Domain Exceptions

Errors raised by the ordering and kitchen services. Each carries the HTTP
status the API layer answers with, so routes can let them propagate and a
single exception handler renders the response.

    ValidationError      400  malformed or incomplete input, never retried
    NotFoundError        404  referenced entity absent or not usable
    ConflictError        409  duplicate completion or invalid transition
    OrderPlacementError  502  placement client exhausted its attempts
"""

from typing import Optional


class QRDineError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Error body returned by the API."""
        return {
            "success": False,
            "error": type(self).__name__,
            "detail": self.message,
        }


class ValidationError(QRDineError):
    status_code = 400
    default_message = "Invalid input"


class NotFoundError(QRDineError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(QRDineError):
    status_code = 409
    default_message = "Request conflicts with the current state"


class OrderPlacementError(QRDineError):
    """
    Raised by the placement client after every attempt failed.

    Attributes:
        attempts: Number of submission attempts made
        last_error: The error from the final attempt
    """

    status_code = 502
    default_message = "There was a problem processing your order. Please try again."

    def __init__(
        self,
        message: Optional[str] = None,
        attempts: int = 0,
        last_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error
