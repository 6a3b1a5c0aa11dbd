"""Typed failures raised by the booking engine."""

from __future__ import annotations


class BookingError(Exception):
    """Base class for every business-rule failure."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    """Malformed or out-of-bound input."""

    code = "invalid"


class NotFoundError(BookingError):
    """Referenced facility, space, reservation or review is absent."""

    code = "not_found"


class PermissionDeniedError(BookingError):
    """Actor is not allowed to perform the requested transition."""

    code = "permission_denied"


class ConflictError(BookingError):
    """Overlapping interval, exceeded quota or duplicate review."""

    code = "conflict"


class PreconditionError(BookingError):
    """Transition attempted from a state that does not allow it."""

    code = "precondition_failed"


class ConcurrencyError(BookingError):
    """A transactional write lost a race and may be retried."""

    code = "concurrency"


__all__ = [
    "BookingError",
    "ConcurrencyError",
    "ConflictError",
    "NotFoundError",
    "PermissionDeniedError",
    "PreconditionError",
    "ValidationError",
]
