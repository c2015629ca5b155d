# app/services/participation.py
"""
Timeslot capacity and waitlist management.

Counters on the timeslot row are the source of truth for admission. Join and
leave lock the timeslot row before reading them, so concurrent requests on the
same timeslot are serialised by the database.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import crud
from app.constants.events import AdmissionResult
from app.models.event import Event
from app.models.event_participant import EventParticipant
from app.models.event_timeslot import EventTimeslot
from app.services.exceptions import (
    AlreadyJoinedError,
    NotFoundError,
    TimeslotFullError,
    EVENT_TIMESLOT_INVALID_ID_ERROR,
)
from app.utils.validators import validate_event_status_for_join_leave

logger = logging.getLogger(__name__)


def admit(timeslot: EventTimeslot) -> str:
    """
    Decide where the next joiner of `timeslot` goes.

    Returns AdmissionResult.ACCEPTED while there is a free place,
    AdmissionResult.WAITLISTED while the waitlist has room, and raises
    TimeslotFullError when both are full.
    """
    if timeslot.num_participants < timeslot.max_participants:
        return AdmissionResult.ACCEPTED
    if timeslot.num_waitlisted < timeslot.max_waitlist:
        return AdmissionResult.WAITLISTED
    raise TimeslotFullError(timeslot.id)


def _get_timeslot_or_404(db: Session, event: Event, timeslot_id: str) -> EventTimeslot:
    timeslot = crud.event.get_timeslot(db, event_id=event.id, timeslot_id=timeslot_id, for_update=True)
    if timeslot is None:
        raise NotFoundError("Timeslot", timeslot_id, message=EVENT_TIMESLOT_INVALID_ID_ERROR)
    return timeslot


def _add_participant(
    db: Session,
    event: Event,
    timeslot: EventTimeslot,
    user_id: str,
    now: datetime,
) -> EventParticipant:
    result = admit(timeslot)
    is_waitlisted = result == AdmissionResult.WAITLISTED

    participation = crud.event_participant.create_participation(
        db,
        event=event,
        timeslot_id=timeslot.id,
        user_id=user_id,
        is_waitlisted=is_waitlisted,
        joined_at=now,
    )
    if is_waitlisted:
        timeslot.num_waitlisted += 1
    else:
        timeslot.num_participants += 1
    db.flush()
    return participation


def join(
    db: Session,
    event: Event,
    timeslot_id: str,
    user_id: str,
    now: Optional[datetime] = None,
) -> EventParticipant:
    """
    Put `user_id` in a timeslot of `event`, accepted or waitlisted.

    Joining the same timeslot again returns the existing participation, also
    when a concurrent join of the same user wins the insert.
    Holding a place in a different timeslot of the event raises
    AlreadyJoinedError.
    """
    existing = crud.event_participant.get_by_timeslot_and_user(
        db, event_id=event.id, timeslot_id=timeslot_id, user_id=user_id
    )
    if existing:
        return existing

    other = crud.event_participant.get_by_event_and_user(db, event_id=event.id, user_id=user_id)
    if other:
        raise AlreadyJoinedError(event.id, other[0].timeslot_id)

    validate_event_status_for_join_leave(event)
    timeslot = _get_timeslot_or_404(db, event, timeslot_id)

    try:
        with db.begin_nested():
            participation = _add_participant(
                db, event, timeslot, user_id, now or datetime.now(timezone.utc)
            )
    except IntegrityError:
        # A concurrent join by the same user inserted first
        existing = crud.event_participant.get_by_timeslot_and_user(
            db, event_id=event.id, timeslot_id=timeslot_id, user_id=user_id
        )
        if existing is None:
            raise
        return existing
    logger.info(
        f"User {user_id} joined event {event.id} timeslot {timeslot_id} "
        f"({'waitlisted' if participation.is_waitlisted else 'accepted'})"
    )
    return participation


def leave(
    db: Session,
    event: Event,
    timeslot_id: str,
    user_id: str,
    now: Optional[datetime] = None,
) -> Optional[EventParticipant]:
    """
    Remove `user_id` from a timeslot and promote the head of the waitlist.

    Leaving without a participation is a no-op. Returns the promoted
    participation, if any.
    """
    timeslot = _get_timeslot_or_404(db, event, timeslot_id)

    participation = crud.event_participant.get_by_timeslot_and_user(
        db, event_id=event.id, timeslot_id=timeslot_id, user_id=user_id
    )
    if participation is None:
        return None

    validate_event_status_for_join_leave(event)

    if participation.is_waitlisted:
        timeslot.num_waitlisted = max(timeslot.num_waitlisted - 1, 0)
    else:
        timeslot.num_participants = max(timeslot.num_participants - 1, 0)
    crud.event_participant.delete(db, db_obj=participation)
    logger.info(f"User {user_id} left event {event.id} timeslot {timeslot_id}")

    return promote_waitlisted_participant(db, event, timeslot, now=now)


def promote_waitlisted_participant(
    db: Session,
    event: Event,
    timeslot: EventTimeslot,
    now: Optional[datetime] = None,
) -> Optional[EventParticipant]:
    """
    Promote exactly one waitlisted participant (earliest joined_at) when the
    timeslot has a free place. The promoted joined_at is re-stamped to `now`.
    """
    if timeslot.num_participants >= timeslot.max_participants:
        return None

    head = crud.event_participant.get_first_waitlisted(
        db, event_id=event.id, timeslot_id=timeslot.id
    )
    if head is None:
        return None

    crud.event_participant.promote(db, db_obj=head, promoted_at=now or datetime.now(timezone.utc))
    timeslot.num_waitlisted = max(timeslot.num_waitlisted - 1, 0)
    timeslot.num_participants += 1
    db.flush()
    logger.info(f"Promoted user {head.user_id} from waitlist in timeslot {timeslot.id}")
    return head


def insert_permanent_participants(
    db: Session, event: Event, now: Optional[datetime] = None
) -> List[EventParticipant]:
    """
    Enrol each timeslot's permanent participants, skipping users that already
    hold a place anywhere in the event. Returns the newly created participations.
    """
    now = now or datetime.now(timezone.utc)
    created: List[EventParticipant] = []

    for timeslot in event.timeslots:
        for user_id in timeslot.permanent_participants or []:
            if crud.event_participant.get_by_event_and_user(db, event_id=event.id, user_id=user_id):
                continue
            try:
                created.append(_add_participant(db, event, timeslot, user_id, now))
            except TimeslotFullError:
                logger.warning(
                    f"Permanent participant {user_id} not enrolled: timeslot {timeslot.id} is full"
                )
    return created
