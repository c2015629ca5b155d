# app/background_tasks/event_tasks.py
"""
Handlers run by the task dispatcher for armed tasks.

These are internal entry points: they are reached only through the
`scheduled_tasks` table, never through the HTTP API. Each runs inside the
dispatcher's transaction and treats a missing or already-advanced resource
as a successful no-op.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from app.constants.tasks import TaskName
from app.services import generation, lifecycle
from app.services.task_queue import task_handler

logger = logging.getLogger(__name__)


@task_handler(TaskName.GENERATE_EVENTS_FOR_SERIES)
def generate_events_for_series(
    db: Session,
    event_series_id: str,
    start: str,
    end: str,
    schedule_next_batch: bool = True,
):
    """Next-batch generation armed by a previous batch."""
    events = generation.generate_for_range(
        db,
        event_series_id,
        datetime.fromisoformat(start),
        datetime.fromisoformat(end),
        schedule_next_batch_after=schedule_next_batch,
    )
    logger.info(f"Batch task for series {event_series_id} produced {len(events)} event(s)")


@task_handler(TaskName.UPDATE_EVENT_STATUS)
def update_event_status(db: Session, event_id: str, status: str):
    lifecycle.apply_event_status(db, event_id, status)


@task_handler(TaskName.DEACTIVATE_EVENT_SERIES)
def deactivate_event_series(db: Session, event_series_id: str):
    lifecycle.deactivate_series_by_id(db, event_series_id)
