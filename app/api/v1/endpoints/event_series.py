# app/api/v1/endpoints/event_series.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status, Response
from sqlalchemy.orm import Session

from app import crud
from app.api import deps
from app.db.session import get_db
from app.schemas.event import Event as EventSchema, SeriesScheduleStatus
from app.schemas.event_series import (
    EventSeries as EventSeriesSchema,
    EventSeriesCreate,
    EventSeriesUpdate,
    GenerateEventsRequest,
    GenerateEventsResponse,
)
from app.schemas.token import TokenPayload
from app.services import event_series as series_service
from app.services import generation, lifecycle

router = APIRouter(tags=["Event Series"])


def _get_series_or_404(db: Session, series_id: str):
    series = crud.event_series.get(db, series_id)
    if not series:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event series not found"
        )
    return series


@router.post(
    "/event-series",
    response_model=EventSeriesSchema,
    status_code=status.HTTP_201_CREATED,
)
def create_event_series(
    series_in: EventSeriesCreate,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Create a series. When created active, its first batch of events is generated."""
    deps.ensure_club_member(current_user, series_in.club_id)
    series = series_service.create_series(db, series_in=series_in, user_id=current_user.sub)
    db.commit()
    db.refresh(series)
    return series


@router.get("/clubs/{club_id}/event-series", response_model=List[EventSeriesSchema])
def list_event_series(
    club_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    deps.ensure_club_member(current_user, club_id)
    return crud.event_series.get_multi_by_club(db, club_id=club_id, skip=skip, limit=limit)


@router.get("/event-series/{series_id}", response_model=EventSeriesSchema)
def get_event_series(
    series_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    series = _get_series_or_404(db, series_id)
    deps.ensure_club_member(current_user, series.club_id)
    return series


@router.patch("/event-series/{series_id}", response_model=EventSeriesSchema)
def update_event_series(
    series_id: str,
    series_in: EventSeriesUpdate,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """
    Update a series. Setting `is_active` to true activates it (first batch,
    deactivation at the end date); setting it to false stops future batches.
    """
    series = _get_series_or_404(db, series_id)
    deps.ensure_club_member(current_user, series.club_id)
    series = series_service.update_series(db, series=series, series_in=series_in)
    db.commit()
    db.refresh(series)
    return series


@router.delete("/event-series/{series_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event_series(
    series_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Delete a series and its events, cancelling every pending task they armed."""
    series = _get_series_or_404(db, series_id)
    deps.ensure_club_member(current_user, series.club_id)
    series_service.delete_series(db, series=series)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/event-series/{series_id}/generate", response_model=GenerateEventsResponse)
def generate_series_events(
    series_id: str,
    range_in: GenerateEventsRequest,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Generate the events of an active series for a date range."""
    series = _get_series_or_404(db, series_id)
    deps.ensure_club_member(current_user, series.club_id)
    events = generation.generate_events(db, series_id, range_in.start_date, range_in.end_date)
    event_ids = [event.id for event in events]
    db.commit()
    return {"event_ids": event_ids}


@router.get("/event-series/{series_id}/events", response_model=List[EventSchema])
def list_series_events(
    series_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    series = _get_series_or_404(db, series_id)
    deps.ensure_club_member(current_user, series.club_id)
    return crud.event.get_multi_by_series(db, series_id=series_id, skip=skip, limit=limit)


@router.get("/event-series/{series_id}/schedule", response_model=SeriesScheduleStatus)
def get_series_schedule(
    series_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """State of the series' armed deactivation and next-batch tasks."""
    series = _get_series_or_404(db, series_id)
    deps.ensure_club_member(current_user, series.club_id)
    return lifecycle.get_series_schedule_statuses(db, series)
