# app/services/event_series.py
"""
Create, update and delete event series.

Validation runs before any write, and activation changes are routed to the
generation service so a series never becomes active without its first batch
and end-of-life task being armed in the same transaction.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app import crud
from app.models.event_series import EventSeries
from app.schemas.event_series import EventSeriesCreate, EventSeriesUpdate
from app.services import generation, lifecycle, task_queue
from app.utils.validators import (
    validate_event_series_for_create,
    validate_event_series_for_update,
)

logger = logging.getLogger(__name__)


def create_series(
    db: Session,
    *,
    series_in: EventSeriesCreate,
    user_id: str,
    now: Optional[datetime] = None,
) -> EventSeries:
    now = now or datetime.now(timezone.utc)
    validate_event_series_for_create(series_in, now=now)

    series = crud.event_series.create_with_owner(
        db, obj_in=series_in.model_copy(update={"is_active": False}), user_id=user_id
    )
    logger.info(f"Created series {series.id} for club {series.club_id}")

    if series_in.is_active:
        generation.activate(db, series, now=now)
    return series


def update_series(
    db: Session,
    *,
    series: EventSeries,
    series_in: EventSeriesUpdate,
    now: Optional[datetime] = None,
) -> EventSeries:
    """
    Apply a partial update. `is_active` false -> true activates the series and
    true -> false deactivates it. Moving the end date or timezone of an active
    series re-arms its deactivation.
    """
    now = now or datetime.now(timezone.utc)
    validate_event_series_for_update(series, series_in, now=now)

    was_active = series.is_active
    previous_deactivation = lifecycle.series_deactivation_at(series)
    series = crud.event_series.update(db, db_obj=series, obj_in=series_in)

    target_active = was_active if series_in.is_active is None else series_in.is_active

    if not was_active and target_active:
        generation.activate(db, series, now=now)
    elif was_active and not target_active:
        generation.deactivate(db, series)
    elif was_active and lifecycle.series_deactivation_at(series) != previous_deactivation:
        task_queue.cancel(db, series.on_series_end_task_id)
        crud.event_series.set_task_handles(db, db_obj=series, on_series_end_task_id=None)
        lifecycle.arm_series_deactivation(db, series)
        logger.info(f"Series {series.id} deactivation re-armed after schedule change")

    return series


def delete_series(db: Session, *, series: EventSeries) -> None:
    lifecycle.delete_series(db, series)
