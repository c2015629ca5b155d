# app/api/v1/endpoints/events.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.orm import Session

from app import crud
from app.api import deps
from app.db.session import get_db
from app.schemas.event import (
    Event as EventSchema,
    EventCreate,
    EventDetails,
    EventParticipant as EventParticipantSchema,
    EventScheduleStatus,
    ParticipatingEvent,
)
from app.schemas.token import TokenPayload
from app.services import events as event_service
from app.services import lifecycle, participation

router = APIRouter(tags=["Events"])


def _get_event_or_404(db: Session, event_id: str, current_user: TokenPayload):
    event = crud.event.get_with_timeslots(db, event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Event not found"
        )
    deps.ensure_club_member(current_user, event.club_id)
    return event


@router.post("/events", response_model=EventSchema, status_code=status.HTTP_201_CREATED)
def create_event(
    event_in: EventCreate,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Create a standalone event outside of any series."""
    deps.ensure_club_member(current_user, event_in.club_id)
    event = event_service.create_event(db, event_in=event_in, user_id=current_user.sub)
    db.commit()
    db.refresh(event)
    return event


@router.get("/events/me", response_model=List[ParticipatingEvent])
def list_my_events(
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Events the caller holds a place in (accepted or waitlisted), by date."""
    participations = crud.event_participant.get_multi_by_user(
        db,
        user_id=current_user.sub,
        from_date=from_date,
        to_date=to_date,
        skip=skip,
        limit=limit,
    )
    return [
        ParticipatingEvent.model_validate(
            {
                **EventSchema.model_validate(p.event).model_dump(),
                "participation": EventParticipantSchema.model_validate(p),
            }
        )
        for p in participations
    ]


@router.get("/events/{event_id}", response_model=EventDetails)
def get_event(
    event_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Event with its timeslots and every participation record."""
    event = _get_event_or_404(db, event_id, current_user)
    participants = crud.event_participant.get_multi_by_event(db, event_id=event.id)
    return EventDetails.model_validate(
        {
            **EventSchema.model_validate(event).model_dump(),
            "participants": [EventParticipantSchema.model_validate(p) for p in participants],
        }
    )


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    event = _get_event_or_404(db, event_id, current_user)
    lifecycle.delete_event(db, event)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/events/{event_id}/cancel", response_model=EventSchema)
def cancel_event(
    event_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    event = _get_event_or_404(db, event_id, current_user)
    event = lifecycle.cancel_event(db, event, user_id=current_user.sub)
    db.commit()
    db.refresh(event)
    return event


@router.post(
    "/events/{event_id}/timeslots/{timeslot_id}/join",
    response_model=EventParticipantSchema,
)
def join_event(
    event_id: str,
    timeslot_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """Join a timeslot; when it is full the caller is put on its waitlist."""
    event = _get_event_or_404(db, event_id, current_user)
    participant = participation.join(db, event, timeslot_id, current_user.sub)
    db.commit()
    db.refresh(participant)
    return participant


@router.post(
    "/events/{event_id}/timeslots/{timeslot_id}/leave",
    status_code=status.HTTP_204_NO_CONTENT,
)
def leave_event(
    event_id: str,
    timeslot_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    event = _get_event_or_404(db, event_id, current_user)
    participation.leave(db, event, timeslot_id, current_user.sub)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/events/{event_id}/schedule", response_model=EventScheduleStatus)
def get_event_schedule(
    event_id: str,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
):
    """State of the event's armed start and end transitions."""
    event = _get_event_or_404(db, event_id, current_user)
    return lifecycle.get_event_schedule_statuses(db, event)
