"""
Booking errors and their HTTP status codes.
"""


class BookingError(Exception):
    """Base exception for booking errors."""

    status_code = 500


class ValidationError(BookingError):
    """Raised when a submission is incomplete, malformed or hits a taken slot."""

    status_code = 400


class StorageError(BookingError):
    """Raised when the database fails underneath a store operation."""

    status_code = 500
