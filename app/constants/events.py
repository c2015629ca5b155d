# app/constants/events.py
"""
Constants for event series, events and timeslots.

Provides type-safe constants to replace hardcoded strings throughout the codebase.
"""
import re


class EventStatus:
    """Lifecycle status values of a generated or standalone event."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    # Forward order of the automatic lifecycle. CANCELLED sits outside it.
    ORDER = {NOT_STARTED: 0, IN_PROGRESS: 1, COMPLETED: 2}
    TERMINAL = (COMPLETED, CANCELLED)

    @classmethod
    def all_values(cls) -> list[str]:
        return [cls.NOT_STARTED, cls.IN_PROGRESS, cls.COMPLETED, cls.CANCELLED]

    @classmethod
    def is_valid(cls, status: str) -> bool:
        return status in cls.all_values()

    @classmethod
    def can_transition(cls, current: str, target: str) -> bool:
        """True when moving from `current` to `target` goes strictly forward."""
        if current in cls.TERMINAL:
            return False
        if target == cls.CANCELLED:
            return current in (cls.NOT_STARTED, cls.IN_PROGRESS)
        return cls.ORDER.get(target, -1) > cls.ORDER.get(current, -1)


class TimeslotType:
    DURATION = "duration"
    START_END = "start_end"

    @classmethod
    def all_values(cls) -> list[str]:
        return [cls.DURATION, cls.START_END]


class AdmissionResult:
    """Outcome of admitting a user into a timeslot."""
    ACCEPTED = "accepted"
    WAITLISTED = "waitlisted"


MAX_EVENT_NAME_LENGTH = 100
MAX_EVENT_DESCRIPTION_LENGTH = 300
MAX_TIMESLOT_NAME_LENGTH = 100
MIN_PARTICIPANTS = 1
MAX_PARTICIPANTS = 100
MIN_WAITLIST = 0
MAX_WAITLIST = 50
MAX_TIMESLOT_DURATION_MINUTES = 24 * 60
MAX_RECURRENCE_INTERVAL_WEEKS = 4

# Quarter-hour "HH:MM" local times
TIME_FORMAT_REGEX = re.compile(r"^([0-1][0-9]|2[0-3]):(00|15|30|45)$")
