# hospital_cabins/errors.py
"""
Failure taxonomy for the cabin services.

Services raise these internally and convert them into structured outcomes at
their public boundary. Routes map ``kind`` onto an HTTP status code.
"""


class BookingError(Exception):
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    """User-correctable input problem (dates, guests, required fields)."""
    kind = "validation"


class UnavailableError(BookingError):
    """Dates conflict or fall outside the permitted windows."""
    kind = "unavailable"


class NotFoundError(BookingError):
    """Missing record, or one the caller is not allowed to see."""
    kind = "not_found"


class PermissionDeniedError(BookingError):
    kind = "forbidden"


class InfrastructureError(BookingError):
    """Data store unreachable or query failure."""
    kind = "infrastructure"


class AvailabilityLookupError(InfrastructureError):
    pass


GENERIC_FAILURE_MESSAGE = "Failed to process request"
