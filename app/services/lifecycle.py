# app/services/lifecycle.py
"""
Lifecycle transitions of events and series.

Arming follows one pattern everywhere: if the stored handle does not point at
a pending task, schedule a new one and store its id. Arming repeatedly (for
overlapping generation batches, duplicate triggers) therefore never creates a
second pending task or a second activity row.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy.orm import Session

from app import crud
from app.constants.events import EventStatus
from app.constants.tasks import ActivityType, TaskName
from app.models.event import Event
from app.models.event_series import EventSeries
from app.services import task_queue
from app.services.exceptions import InvalidStateError
from app.utils.dates import local_time_to_utc, start_of_day_in_timezone

logger = logging.getLogger(__name__)


def event_start_at(event: Event) -> datetime:
    return local_time_to_utc(event.start_time, event.timezone, event.date)


def event_end_at(event: Event) -> datetime:
    return local_time_to_utc(event.end_time, event.timezone, event.date)


def series_deactivation_at(series: EventSeries) -> datetime:
    return start_of_day_in_timezone(series.end_date, series.timezone)


def arm_transitions(
    db: Session,
    event: Event,
    start_at: Optional[datetime] = None,
    end_at: Optional[datetime] = None,
) -> Event:
    """
    Arm the not_started -> in_progress and -> completed transitions of `event`.

    Each side is armed only when the event holds no pending handle for it and
    the transition is still ahead of the current status.
    """
    start_at = start_at or event_start_at(event)
    end_at = end_at or event_end_at(event)

    if not EventStatus.can_transition(event.status, EventStatus.COMPLETED):
        return event

    if event.status == EventStatus.NOT_STARTED and not crud.scheduled_task.is_pending(
        db, task_id=event.on_event_start_task_id
    ):
        task = task_queue.schedule_at(
            db,
            start_at,
            TaskName.UPDATE_EVENT_STATUS,
            {"event_id": event.id, "status": EventStatus.IN_PROGRESS},
        )
        crud.event.set_task_handles(db, db_obj=event, on_event_start_task_id=task.id)
    crud.activity.get_or_create(
        db,
        resource_id=event.id,
        type=ActivityType.EVENT_IN_PROGRESS_SCHEDULED,
        scheduled_at=start_at,
        title="Event start scheduled",
        description=f"{event.name} will move to in progress.",
        created_by=event.created_by,
    )

    if not crud.scheduled_task.is_pending(db, task_id=event.on_event_end_task_id):
        task = task_queue.schedule_at(
            db,
            end_at,
            TaskName.UPDATE_EVENT_STATUS,
            {"event_id": event.id, "status": EventStatus.COMPLETED},
        )
        crud.event.set_task_handles(db, db_obj=event, on_event_end_task_id=task.id)
    crud.activity.get_or_create(
        db,
        resource_id=event.id,
        type=ActivityType.EVENT_COMPLETED_SCHEDULED,
        scheduled_at=end_at,
        title="Event completion scheduled",
        description=f"{event.name} will be marked as completed.",
        created_by=event.created_by,
    )
    return event


def arm_series_deactivation(
    db: Session, series: EventSeries, deactivate_at: Optional[datetime] = None
) -> EventSeries:
    """Arm automatic deactivation at local midnight of the series end date."""
    deactivate_at = deactivate_at or series_deactivation_at(series)

    if not crud.scheduled_task.is_pending(db, task_id=series.on_series_end_task_id):
        task = task_queue.schedule_at(
            db,
            deactivate_at,
            TaskName.DEACTIVATE_EVENT_SERIES,
            {"event_series_id": series.id},
        )
        crud.event_series.set_task_handles(db, db_obj=series, on_series_end_task_id=task.id)
        logger.info(f"Series {series.id} deactivation armed for {deactivate_at.isoformat()}")
    crud.activity.get_or_create(
        db,
        resource_id=series.id,
        type=ActivityType.EVENT_SERIES_DEACTIVATION_SCHEDULED,
        scheduled_at=deactivate_at,
        title="Series deactivation scheduled",
        description=f"{series.name} will stop generating events.",
        created_by=series.created_by,
    )
    return series


def cancel_event_scheduled_tasks(db: Session, event: Event) -> None:
    """Cancel the pending start/end tasks of an event and clear its handles."""
    task_queue.cancel(db, event.on_event_start_task_id)
    task_queue.cancel(db, event.on_event_end_task_id)
    crud.event.set_task_handles(
        db, db_obj=event, on_event_start_task_id=None, on_event_end_task_id=None
    )


def cancel_series_scheduled_tasks(db: Session, series: EventSeries) -> None:
    """Cancel the pending next-batch and series-end tasks and clear the handles."""
    task_queue.cancel(db, series.on_next_batch_task_id)
    task_queue.cancel(db, series.on_series_end_task_id)
    crud.event_series.set_task_handles(
        db, db_obj=series, on_next_batch_task_id=None, on_series_end_task_id=None
    )


def apply_event_status(db: Session, event_id: str, status: str) -> Optional[Event]:
    """
    Move an event forward to `status`.

    Missing events and transitions that are not strictly forward (equal, past
    or out of a terminal state) are no-ops, so a stale task firing after a
    manual change leaves the event alone. Returns the event when it changed.
    """
    event = crud.event.get_for_update(db, event_id)
    if event is None:
        logger.warning(f"Status update skipped: event {event_id} no longer exists")
        return None
    if not EventStatus.can_transition(event.status, status):
        logger.warning(
            f"Status update skipped: event {event_id} is {event.status}, cannot move to {status}"
        )
        return None

    previous = event.status
    crud.event.update_status(db, db_obj=event, status=status)
    crud.activity.get_or_create(
        db,
        resource_id=event.id,
        type=ActivityType.EVENT_STATUS_CHANGED,
        scheduled_at=datetime.now(timezone.utc),
        title="Event status changed",
        description=f"{previous} -> {status}",
    )
    logger.info(f"Event {event_id} moved from {previous} to {status}")
    return event


def deactivate_series_by_id(db: Session, event_series_id: str) -> Optional[EventSeries]:
    """End-of-life deactivation. No-op when the series has been deleted."""
    series = crud.event_series.get_for_update(db, event_series_id)
    if series is None:
        logger.warning(f"Deactivation skipped: series {event_series_id} no longer exists")
        return None

    task_queue.cancel(db, series.on_next_batch_task_id)
    # The end task is the one running now, so only its handle is cleared
    crud.event_series.set_task_handles(
        db, db_obj=series, on_next_batch_task_id=None, on_series_end_task_id=None
    )
    was_active = series.is_active
    crud.event_series.set_active(db, db_obj=series, is_active=False)

    if was_active:
        crud.activity.get_or_create(
            db,
            resource_id=series.id,
            type=ActivityType.EVENT_SERIES_DEACTIVATED,
            scheduled_at=datetime.now(timezone.utc),
            title="Series deactivated",
            description=f"{series.name} reached its end date.",
        )
        logger.info(f"Series {event_series_id} deactivated at end of schedule")
    return series


def cancel_event(db: Session, event: Event, user_id: Optional[str] = None) -> Event:
    """
    Manually cancel an event that has not completed.

    Cancelling an already cancelled event is a no-op. Pending transition tasks
    are canceled so they cannot fire afterwards.
    """
    if event.status == EventStatus.CANCELLED:
        return event
    if not EventStatus.can_transition(event.status, EventStatus.CANCELLED):
        raise InvalidStateError(f"Event {event.id} is {event.status} and cannot be cancelled.")

    cancel_event_scheduled_tasks(db, event)
    crud.event.update_status(db, db_obj=event, status=EventStatus.CANCELLED)
    crud.activity.get_or_create(
        db,
        resource_id=event.id,
        type=ActivityType.EVENT_CANCELLED,
        scheduled_at=datetime.now(timezone.utc),
        title="Event cancelled",
        description=f"{event.name} was cancelled.",
        created_by=user_id,
    )
    logger.info(f"Event {event.id} cancelled")
    return event


def delete_event(db: Session, event: Event) -> None:
    """Cancel the event's pending tasks, then delete it with its timeslots and participants."""
    cancel_event_scheduled_tasks(db, event)
    db.delete(event)
    db.flush()
    logger.info(f"Event {event.id} deleted")


def delete_series(db: Session, series: EventSeries) -> None:
    """
    Cancel every pending task of the series and of its events, then delete the
    series; its events cascade.
    """
    cancel_series_scheduled_tasks(db, series)
    for event in crud.event.get_all_by_series(db, series_id=series.id):
        cancel_event_scheduled_tasks(db, event)
    db.delete(series)
    db.flush()
    logger.info(f"Series {series.id} deleted")


def _task_status(db: Session, task_id: Optional[str]) -> Dict[str, Optional[str]]:
    return {"task_id": task_id, "state": task_queue.get_state(db, task_id)}


def get_event_schedule_statuses(db: Session, event: Event) -> dict:
    return {
        "event_id": event.id,
        "start": _task_status(db, event.on_event_start_task_id),
        "end": _task_status(db, event.on_event_end_task_id),
    }


def get_series_schedule_statuses(db: Session, series: EventSeries) -> dict:
    return {
        "event_series_id": series.id,
        "is_active": series.is_active,
        "series_end": _task_status(db, series.on_series_end_task_id),
        "next_batch": _task_status(db, series.on_next_batch_task_id),
    }
