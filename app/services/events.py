# app/services/events.py
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app import crud
from app.models.event import Event
from app.schemas.event import EventCreate
from app.services import lifecycle
from app.services.participation import insert_permanent_participants
from app.utils.validators import validate_event_for_create


def create_event(
    db: Session,
    *,
    event_in: EventCreate,
    user_id: str,
    now: Optional[datetime] = None,
) -> Event:
    """Create a standalone event, enrol its permanent participants and arm its transitions."""
    now = now or datetime.now(timezone.utc)
    validate_event_for_create(event_in, now=now)

    event = crud.event.create_with_owner(db, obj_in=event_in, user_id=user_id)
    insert_permanent_participants(db, event, now=now)
    lifecycle.arm_transitions(db, event)
    return event
