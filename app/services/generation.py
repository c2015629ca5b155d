# app/services/generation.py
"""
Batch generation of events from a series.

A batch covers at most MAX_GENERATION_HORIZON_DAYS. When a batch asks for it,
the next batch is armed as a `generate_events_for_series` task that runs
GENERATION_LEAD_DAYS before the next date that still has no event, so an
active series keeps materialising its events one bounded window at a time
until its end date.

Every step is get-or-create, so a batch can be re-run for overlapping ranges
without producing duplicate events, participants, tasks or activities.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app import crud
from app.constants.tasks import TaskName
from app.core.config import settings
from app.models.event import Event
from app.models.event_series import EventSeries
from app.models.scheduled_task import ScheduledTask
from app.services import lifecycle, task_queue
from app.services.exceptions import NotFoundError, SeriesInactiveError
from app.services.participation import insert_permanent_participants
from app.utils.dates import ensure_utc, generate_upcoming_event_dates, start_of_day_in_timezone
from app.utils.validators import validate_event_date_range

logger = logging.getLogger(__name__)


def find_next_event_date(series: EventSeries, after: datetime) -> Optional[datetime]:
    """
    First date of the series at or after `after` and before its end date,
    searched in horizon-sized windows.
    """
    cursor = ensure_utc(after)
    end = series.end_date
    horizon = timedelta(days=settings.MAX_GENERATION_HORIZON_DAYS)

    while cursor < end:
        dates = generate_upcoming_event_dates(series, cursor, end)
        if dates:
            return dates[0]
        cursor += horizon
    return None


def schedule_next_batch(
    db: Session,
    series: EventSeries,
    generated_dates: List[datetime],
    window_end: datetime,
    now: Optional[datetime] = None,
) -> Optional[ScheduledTask]:
    """
    Arm the series' next generation batch.

    The search for the next date starts right after the last generated date,
    or at the end of the window when the batch produced nothing. The batch
    itself starts at local midnight of that date. Skipped when
    a next batch is already pending or the series has no dates left.
    """
    if crud.scheduled_task.is_pending(db, task_id=series.on_next_batch_task_id):
        logger.info(f"Next batch for series {series.id} already armed")
        return None

    now = ensure_utc(now or datetime.now(timezone.utc))
    if generated_dates:
        cursor = max(generated_dates) + timedelta(seconds=1)
    else:
        cursor = window_end

    next_date = find_next_event_date(series, cursor)
    if next_date is None:
        logger.info(f"Series {series.id} has no dates left after {cursor.isoformat()}")
        return None

    run_at = max(next_date - timedelta(days=settings.GENERATION_LEAD_DAYS), now)
    task = task_queue.schedule_at(
        db,
        run_at,
        TaskName.GENERATE_EVENTS_FOR_SERIES,
        {
            "event_series_id": series.id,
            # Local midnight, so a later start_time change still falls inside the batch
            "start": start_of_day_in_timezone(next_date, series.timezone).isoformat(),
            "end": series.end_date.isoformat(),
            "schedule_next_batch": True,
        },
    )
    crud.event_series.set_task_handles(db, db_obj=series, on_next_batch_task_id=task.id)
    logger.info(
        f"Next batch for series {series.id} armed at {run_at.isoformat()} "
        f"(next date {next_date.isoformat()})"
    )
    return task


def generate_for_range(
    db: Session,
    series_id: str,
    start: datetime,
    end: datetime,
    schedule_next_batch_after: bool = False,
    now: Optional[datetime] = None,
) -> List[Event]:
    """
    Materialise the series' events in [start, end), bounded by the horizon.

    A missing or inactive series is a no-op, since this also runs from tasks
    armed before the series was deleted or paused.
    """
    series = crud.event_series.get(db, series_id)
    if series is None:
        logger.warning(f"Generation skipped: series {series_id} no longer exists")
        return []
    if not series.is_active:
        logger.warning(f"Generation skipped: series {series_id} is inactive")
        return []

    now = ensure_utc(now or datetime.now(timezone.utc))
    start = max(ensure_utc(start), series.start_date)
    end = min(ensure_utc(end), series.end_date)
    window_end = min(end, start + timedelta(days=settings.MAX_GENERATION_HORIZON_DAYS))

    dates = generate_upcoming_event_dates(series, start, end) if start < end else []

    events: List[Event] = []
    created_count = 0
    for date in dates:
        event, created = crud.event.get_or_create_from_series(db, series=series, date=date)
        created_count += int(created)
        insert_permanent_participants(db, event, now=now)
        lifecycle.arm_transitions(db, event)
        events.append(event)

    logger.info(
        f"Generated batch for series {series_id}: {len(events)} event(s), "
        f"{created_count} new, window {start.isoformat()} - {window_end.isoformat()}"
    )

    if schedule_next_batch_after:
        schedule_next_batch(db, series, dates, window_end=max(window_end, start), now=now)

    return events


def activate(db: Session, series: EventSeries, now: Optional[datetime] = None) -> List[Event]:
    """
    Activate a series: arm its end-of-life deactivation and generate the first
    batch from max(now, start_date), arming the batches after it.
    """
    now = ensure_utc(now or datetime.now(timezone.utc))
    crud.event_series.set_active(db, db_obj=series, is_active=True)
    lifecycle.arm_series_deactivation(db, series)
    logger.info(f"Series {series.id} activated")
    return generate_for_range(
        db,
        series.id,
        max(now, series.start_date),
        series.end_date,
        schedule_next_batch_after=True,
        now=now,
    )


def deactivate(db: Session, series: EventSeries) -> EventSeries:
    """Manual deactivation: stop future batches and the end-of-life task."""
    lifecycle.cancel_series_scheduled_tasks(db, series)
    crud.event_series.set_active(db, db_obj=series, is_active=False)
    logger.info(f"Series {series.id} deactivated")
    return series


def generate_events(
    db: Session,
    series_id: str,
    start: datetime,
    end: datetime,
    now: Optional[datetime] = None,
) -> List[Event]:
    """User-triggered generation for an active series. Does not arm a next batch."""
    series = crud.event_series.get(db, series_id)
    if series is None:
        raise NotFoundError("Event series", series_id)
    if not series.is_active:
        raise SeriesInactiveError(series_id)
    validate_event_date_range(start, end)
    return generate_for_range(db, series_id, start, end, schedule_next_batch_after=False, now=now)
