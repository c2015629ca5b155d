# app/utils/dates.py
"""
Timezone-aware date helpers and the recurrence date generator.

All instants handled here are aware UTC datetimes. Local wall-clock values
("HH:MM" strings, calendar dates) are always interpreted in an IANA timezone
through zoneinfo, so DST shifts are applied per date.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Union
from zoneinfo import ZoneInfo

from app.core.config import settings


def ensure_utc(value: datetime) -> datetime:
    """Return `value` as an aware UTC datetime. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_time(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def time_duration_in_minutes(start_time: str, end_time: str) -> int:
    """
    Minutes between two "HH:MM" times on the same day.

    Negative when `end_time` is before `start_time`; overnight spans are not
    supported.
    """
    start = parse_time(start_time)
    end = parse_time(end_time)
    return (end.hour * 60 + end.minute) - (start.hour * 60 + start.minute)


def local_date(instant: datetime, tz_name: str) -> date:
    """Calendar date of `instant` as seen in `tz_name`."""
    return ensure_utc(instant).astimezone(ZoneInfo(tz_name)).date()


def calendar_date(value: datetime, tz_name: str) -> date:
    """
    The local calendar day meant by `value`: naive values are taken as already
    local, aware values are converted into `tz_name`.
    """
    if value.tzinfo is None:
        return value.date()
    return local_date(value, tz_name)


def local_time_to_utc(
    time_str: str, tz_name: str, target: Union[date, datetime]
) -> datetime:
    """
    Convert a local "HH:MM" on a given day into a UTC instant.

    Args:
        time_str: Local time of day, e.g. "18:30"
        tz_name: IANA timezone of the location
        target: The local calendar date, or any instant on that local day

    Returns:
        Aware UTC datetime
    """
    if isinstance(target, datetime):
        target = local_date(target, tz_name)
    local = datetime.combine(target, parse_time(time_str), tzinfo=ZoneInfo(tz_name))
    return local.astimezone(timezone.utc)


def start_of_day_in_timezone(instant: datetime, tz_name: str) -> datetime:
    """UTC instant of local midnight on the local day that contains `instant`."""
    return local_time_to_utc("00:00", tz_name, local_date(instant, tz_name))


def start_of_week(day: date) -> date:
    """The Sunday that opens the week containing `day`."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def is_included_week(day: date, anchor: date, interval: int) -> bool:
    """
    True when `day` falls in an included week of an every-`interval`-weeks
    recurrence whose first included week is the one containing `anchor`.
    """
    if interval <= 1:
        return True
    weeks = (start_of_week(day) - start_of_week(anchor)).days // 7
    return weeks % interval == 0


def generate_upcoming_event_dates(
    series,
    window_start: datetime,
    window_end: datetime,
    horizon_days: Optional[int] = None,
) -> List[datetime]:
    """
    Expand the weekly recurrence of `series` into event instants.

    A local day qualifies when its weekday is in `series.days_of_week`
    (0=Monday .. 6=Sunday) and its Sunday-started week is an included week
    counted from the week of `series.start_date`. Each qualifying day is
    combined with `series.start_time` in `series.timezone`.

    Only instants in [window_start, min(window_end, window_start + horizon))
    are returned, ascending and without duplicates.
    """
    if horizon_days is None:
        horizon_days = settings.MAX_GENERATION_HORIZON_DAYS

    window_start = ensure_utc(window_start)
    window_end = ensure_utc(window_end)
    upper_bound = min(window_end, window_start + timedelta(days=horizon_days))
    if upper_bound <= window_start:
        return []

    tz_name = series.timezone
    days_of_week = set(series.days_of_week)
    interval = series.interval or 1
    anchor = local_date(series.start_date, tz_name)

    dates: List[datetime] = []
    current = local_date(window_start, tz_name)
    last_day = local_date(upper_bound, tz_name)

    while current <= last_day:
        if current.weekday() in days_of_week and is_included_week(current, anchor, interval):
            instant = local_time_to_utc(series.start_time, tz_name, current)
            if window_start <= instant < upper_bound:
                dates.append(instant)
        current += timedelta(days=1)

    return dates
