"""Custom application exceptions."""

from app.engines.availability import BookingError, BookingOutcome
from app.engines.billing import InvalidLineItem


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class BookingRejectedException(AppException):
    """A booking attempt failed one of the availability checks."""

    STATUS_CODES = {
        BookingError.DOCTOR_UNAVAILABLE: 400,
        BookingError.PAST_DATE_TIME: 400,
        BookingError.OUTSIDE_WORKING_HOURS: 400,
        BookingError.SLOT_CONFLICT: 409,
    }

    def __init__(self, outcome: BookingOutcome):
        """Initialize from a failed booking outcome."""
        if outcome.error is None:
            raise ValueError("BookingRejectedException needs a failed outcome")
        self.reason = outcome.error
        super().__init__(outcome.message or "Booking rejected", self.STATUS_CODES[outcome.error])


class InvalidLineItemException(AppException):
    """A bill line item failed validation."""

    def __init__(self, invalid: InvalidLineItem):
        """Initialize with 422 status code."""
        self.invalid = invalid
        super().__init__(f"items[{invalid.index}].{invalid.field}: {invalid.message}", 422)
