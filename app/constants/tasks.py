# app/constants/tasks.py
"""
Constants for the scheduled task queue and the activity log.
"""


class TaskState:
    """State of a scheduled task handle."""
    PENDING = "pending"
    EXECUTED = "executed"
    CANCELED = "canceled"
    FAILED = "failed"

    @classmethod
    def all_values(cls) -> list[str]:
        return [cls.PENDING, cls.EXECUTED, cls.CANCELED, cls.FAILED]


class TaskName:
    """Names of the internal handlers the dispatcher may invoke."""
    GENERATE_EVENTS_FOR_SERIES = "generate_events_for_series"
    UPDATE_EVENT_STATUS = "update_event_status"
    DEACTIVATE_EVENT_SERIES = "deactivate_event_series"


class ActivityType:
    EVENT_SERIES_DEACTIVATION_SCHEDULED = "eventSeries:deactivation-scheduled"
    EVENT_SERIES_DEACTIVATED = "eventSeries:deactivated"
    EVENT_IN_PROGRESS_SCHEDULED = "event:in_progress-scheduled"
    EVENT_COMPLETED_SCHEDULED = "event:completed-scheduled"
    EVENT_STATUS_CHANGED = "event:status-changed"
    EVENT_CANCELLED = "event:cancelled"
