# app/utils/validators.py
"""
Business validation for event series, events and timeslots.

Every check runs before anything is written and raises InvalidScheduleError
(or InvalidEventStatusError for join/leave) with a user-facing message.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from app.constants.events import EventStatus, TimeslotType, MAX_PARTICIPANTS
from app.core.config import settings
from app.schemas.common import TimeslotInput
from app.services.exceptions import InvalidEventStatusError, InvalidScheduleError
from app.utils.dates import calendar_date, ensure_utc, local_time_to_utc, time_duration_in_minutes


END_TIME_AFTER_START_ERROR = "End time must be after start time."
EVENT_DATE_FUTURE_ERROR = "Date must be in the future."
EVENT_START_DATE_FUTURE_ERROR = "Start date must be in the future."
EVENT_END_DATE_AFTER_START_ERROR = "End date must be after start date."
EVENT_DATE_TOO_FAR_IN_FUTURE_ERROR = (
    "Event starting date is too far in the future. "
    "Please keep the event starting date within {days} days from now."
)
EVENT_SERIES_DURATION_EXCEEDED_ERROR = "Event series cannot run for {months} months or longer."
EVENT_DATE_RANGE_INVALID_ERROR = "Date range must be valid and no longer than {days} days."
EVENT_TIMESLOT_AT_LEAST_ONE_REQUIRED_ERROR = "At least one timeslot is required."
TIMESLOT_DURATION_REQUIRED_ERROR = "Duration is required for duration-type timeslots."
TIMESLOT_DURATION_NOT_MATCH_SCHEDULE_ERROR = "Timeslot duration must be within the event's time range."
TIMESLOT_START_END_REQUIRED_ERROR = "Start time and end time are required for start/end-type timeslots."
TIMESLOT_TIME_RANGE_NOT_MATCH_SCHEDULE_ERROR = "Timeslot time range must be within the event's time range."
TIMESLOT_PERMANENT_PARTICIPANTS_EXCEEDED_MAX_ERROR = (
    "The number of participants for this timeslot cannot exceed the timeslot maximum participants."
)
EVENT_TIMESLOT_PERMANENT_PARTICIPANTS_NOT_UNIQUE_ERROR = "Permanent participants must be unique."
EVENT_PERMANENT_PARTICIPANT_MULTIPLE_TIMESLOTS_ERROR = (
    "A permanent participant can only be assigned to one timeslot per event."
)
TIMESLOT_MAX_PARTICIPANTS_EXCEEDED_ERROR = (
    f"Total max participants for all timeslots exceeds maximum {MAX_PARTICIPANTS} participants per event."
)


def months_between(start: datetime, end: datetime) -> int:
    """Number of whole calendar months from `start` to `end` (never negative)."""
    if end < start:
        start, end = end, start
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if (end.day, end.time()) < (start.day, start.time()):
        months -= 1
    return months


def validate_event_time(start_time: str, end_time: str, field: str = "end_time") -> None:
    # Zero-padded "HH:MM" strings compare in time order
    if start_time >= end_time:
        raise InvalidScheduleError(END_TIME_AFTER_START_ERROR, field=field)


def validate_recurring_schedule(
    start_date: datetime, end_date: datetime, now: Optional[datetime] = None
) -> None:
    now = ensure_utc(now or datetime.now(timezone.utc))
    start_date = ensure_utc(start_date)
    end_date = ensure_utc(end_date)

    if start_date <= now:
        raise InvalidScheduleError(EVENT_START_DATE_FUTURE_ERROR, field="start_date")
    if end_date <= start_date:
        raise InvalidScheduleError(EVENT_END_DATE_AFTER_START_ERROR, field="end_date")
    if start_date - now >= timedelta(days=settings.MAX_START_DATE_DAYS_FROM_NOW):
        raise InvalidScheduleError(
            EVENT_DATE_TOO_FAR_IN_FUTURE_ERROR.format(days=settings.MAX_START_DATE_DAYS_FROM_NOW),
            field="start_date",
        )
    if months_between(start_date, end_date) >= settings.MAX_SERIES_DURATION_MONTHS:
        raise InvalidScheduleError(
            EVENT_SERIES_DURATION_EXCEEDED_ERROR.format(months=settings.MAX_SERIES_DURATION_MONTHS),
            field="end_date",
        )


def validate_event_date(date: datetime, now: Optional[datetime] = None) -> None:
    now = ensure_utc(now or datetime.now(timezone.utc))
    date = ensure_utc(date)

    if date <= now:
        raise InvalidScheduleError(EVENT_DATE_FUTURE_ERROR, field="date")
    if date - now >= timedelta(days=settings.MAX_START_DATE_DAYS_FROM_NOW):
        raise InvalidScheduleError(
            EVENT_DATE_TOO_FAR_IN_FUTURE_ERROR.format(days=settings.MAX_START_DATE_DAYS_FROM_NOW),
            field="date",
        )


def validate_event_timeslots(
    start_time: str, end_time: str, timeslots: Sequence[TimeslotInput]
) -> None:
    """
    Check a timeslot layout against the event's local start and end times.

    Duration slots must fit inside the event span, start/end slots must lie
    within it, permanent participants must be unique, fit the slot and appear in
    only one slot, and the sum of all slot capacities is capped at MAX_PARTICIPANTS.
    """
    if not timeslots:
        raise InvalidScheduleError(EVENT_TIMESLOT_AT_LEAST_ONE_REQUIRED_ERROR, field="timeslots")

    event_minutes = time_duration_in_minutes(start_time, end_time)

    for timeslot in timeslots:
        if timeslot.type == TimeslotType.DURATION:
            if not timeslot.duration:
                raise InvalidScheduleError(TIMESLOT_DURATION_REQUIRED_ERROR, field="timeslots")
            if timeslot.duration > event_minutes:
                raise InvalidScheduleError(TIMESLOT_DURATION_NOT_MATCH_SCHEDULE_ERROR, field="timeslots")
        elif timeslot.type == TimeslotType.START_END:
            if not timeslot.start_time or not timeslot.end_time:
                raise InvalidScheduleError(TIMESLOT_START_END_REQUIRED_ERROR, field="timeslots")
            if timeslot.start_time < start_time or timeslot.end_time > end_time:
                raise InvalidScheduleError(TIMESLOT_TIME_RANGE_NOT_MATCH_SCHEDULE_ERROR, field="timeslots")
            validate_event_time(timeslot.start_time, timeslot.end_time, field="timeslots")

        if len(timeslot.permanent_participants) > timeslot.max_participants:
            raise InvalidScheduleError(TIMESLOT_PERMANENT_PARTICIPANTS_EXCEEDED_MAX_ERROR, field="timeslots")
        if len(set(timeslot.permanent_participants)) != len(timeslot.permanent_participants):
            raise InvalidScheduleError(EVENT_TIMESLOT_PERMANENT_PARTICIPANTS_NOT_UNIQUE_ERROR, field="timeslots")

    permanent = [user_id for timeslot in timeslots for user_id in timeslot.permanent_participants]
    if len(set(permanent)) != len(permanent):
        raise InvalidScheduleError(EVENT_PERMANENT_PARTICIPANT_MULTIPLE_TIMESLOTS_ERROR, field="timeslots")

    if sum(timeslot.max_participants for timeslot in timeslots) > MAX_PARTICIPANTS:
        raise InvalidScheduleError(TIMESLOT_MAX_PARTICIPANTS_EXCEEDED_ERROR, field="timeslots")


def validate_event_series_for_create(series_in, now: Optional[datetime] = None) -> None:
    validate_event_time(series_in.start_time, series_in.end_time)
    validate_recurring_schedule(series_in.start_date, series_in.end_date, now=now)
    validate_event_timeslots(series_in.start_time, series_in.end_time, series_in.timeslots)


def validate_event_series_for_update(
    series, series_in, now: Optional[datetime] = None
) -> None:
    """
    Validate a partial update merged over the stored series.

    The schedule is only re-checked when the update touches it, so a running
    series (whose start date is already past) can still be renamed or paused.
    """
    start_time = series_in.start_time or series.start_time
    end_time = series_in.end_time or series.end_time
    validate_event_time(start_time, end_time)

    if series_in.start_date is not None or series_in.end_date is not None:
        validate_recurring_schedule(
            series_in.start_date or series.start_date,
            series_in.end_date or series.end_date,
            now=now,
        )

    if series_in.timeslots is not None:
        validate_event_timeslots(start_time, end_time, series_in.timeslots)
    elif series_in.start_time is not None or series_in.end_time is not None:
        validate_event_timeslots(
            start_time,
            end_time,
            [TimeslotInput(**template) for template in series.timeslot_template],
        )


def validate_event_for_create(event_in, now: Optional[datetime] = None) -> None:
    validate_event_time(event_in.start_time, event_in.end_time)
    # The event starts at its local start time on the given day
    tz_name = event_in.location.timezone
    starts_at = local_time_to_utc(event_in.start_time, tz_name, calendar_date(event_in.date, tz_name))
    validate_event_date(starts_at, now=now)
    validate_event_timeslots(event_in.start_time, event_in.end_time, event_in.timeslots)


def validate_event_date_range(start: datetime, end: datetime) -> None:
    start = ensure_utc(start)
    end = ensure_utc(end)
    if end < start or end - start > timedelta(days=settings.MAX_GENERATION_DATE_RANGE_DAYS):
        raise InvalidScheduleError(
            EVENT_DATE_RANGE_INVALID_ERROR.format(days=settings.MAX_GENERATION_DATE_RANGE_DAYS),
            field="end_date",
        )


def validate_event_status_for_join_leave(event) -> None:
    if event.status != EventStatus.NOT_STARTED:
        raise InvalidEventStatusError(event.id, event.status)
