"""
Application error taxonomy.

Every error raised by the booking pipeline derives from ``AppError`` and knows the HTTP
status it maps to. ``shuttle.main`` renders them as ``{"error": ..., "details": [...]}``.
"""

from typing import List, Optional

from fastapi import status


class AppError(Exception):
    """Base class for errors that are reported to the caller."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = list(details) if details else []

    @property
    def public_message(self) -> str:
        return self.message


class ThrottledError(AppError):
    """The client exceeded a rate limit."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str = "Too many requests. Please try again later.", retry_after: int = 60):
        super().__init__(message)
        self.retry_after = retry_after


class ValidationError(AppError):
    """One or more field rules failed; ``details`` lists every violated rule in order."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, details: List[str], message: str = "Validation failed"):
        super().__init__(message, details)


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT


class UniqueViolationError(ConflictError):
    """The persistence store refused a write because of a unique constraint."""


class PriceMismatchError(ConflictError):
    def __init__(self, expected: float, received: float):
        super().__init__(
            "Price mismatch",
            [f"Route price is {expected:.2f} but the booking requested {received:.2f}"],
        )
        self.expected = expected
        self.received = received


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class ExternalError(AppError):
    """A collaborator (database, payment provider) failed.

    The message is kept for the server-side log; callers only ever see a generic text.
    """

    status_code = status.HTTP_502_BAD_GATEWAY

    @property
    def public_message(self) -> str:
        return "An internal error occurred. Please try again later."


class PaymentDeclinedError(ExternalError):
    """The payment provider did not report the charge as succeeded."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED

    @property
    def public_message(self) -> str:
        return "Payment was not completed"
