# app/services/exceptions.py
"""
Custom exceptions for the service layer.

Provides specific exception types for business logic errors that
app.main translates into HTTP responses.
"""

from typing import Any, Optional


# Messages shown to club members and organisers
EVENT_TIMESLOT_FULL_ERROR = "This event timeslot is full and waitlist is also full."
EVENT_TIMESLOT_INVALID_ID_ERROR = "Invalid timeslot ID provided."
EVENT_CANNOT_JOIN_OR_LEAVE_DUE_TO_STATUS_ERROR = (
    "Unable to join or leave event as it has already started or been cancelled."
)
EVENT_CANNOT_GENERATE_DUE_TO_INACTIVE_STATUS_ERROR = "Unable to generate events due to inactive status."
EVENT_ALREADY_JOINED_ERROR = "You have already joined this event."


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ServiceError):
    """Raised when a series, event or timeslot does not exist."""

    def __init__(self, resource: str, identifier: Any, message: Optional[str] = None):
        self.resource = resource
        self.identifier = identifier
        super().__init__(message or f"{resource} {identifier} not found")


class InvalidStateError(ServiceError):
    """Raised when an operation is not allowed in the resource's current state."""
    pass


class InvalidEventStatusError(InvalidStateError):
    """Join or leave attempted on an event that is no longer `not_started`."""

    def __init__(self, event_id: str, status: str):
        self.event_id = event_id
        self.status = status
        super().__init__(EVENT_CANNOT_JOIN_OR_LEAVE_DUE_TO_STATUS_ERROR)


class AlreadyJoinedError(InvalidStateError):
    """The user already holds a place in another timeslot of the same event."""

    def __init__(self, event_id: str, timeslot_id: str):
        self.event_id = event_id
        self.timeslot_id = timeslot_id
        super().__init__(EVENT_ALREADY_JOINED_ERROR)


class SeriesInactiveError(InvalidStateError):
    def __init__(self, series_id: str):
        self.series_id = series_id
        super().__init__(EVENT_CANNOT_GENERATE_DUE_TO_INACTIVE_STATUS_ERROR)


class CapacityExceededError(ServiceError):
    """Raised when a capacity limit would be exceeded."""
    pass


class TimeslotFullError(CapacityExceededError):
    def __init__(self, timeslot_id: str):
        self.timeslot_id = timeslot_id
        super().__init__(EVENT_TIMESLOT_FULL_ERROR)


class InvalidScheduleError(ServiceError):
    """Raised when a recurrence, date range or timeslot layout is malformed."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)
