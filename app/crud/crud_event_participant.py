# app/crud/crud_event_participant.py
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.event import Event
from app.models.event_participant import EventParticipant
from app.utils.dates import ensure_utc


class CRUDEventParticipant(CRUDBase[EventParticipant, Any, Any]):
    """
    Participation records. Counter bookkeeping on the timeslot is done by the
    participation service, not here.
    """

    def get_by_timeslot_and_user(
        self, db: Session, *, event_id: str, timeslot_id: str, user_id: str
    ) -> Optional[EventParticipant]:
        return (
            db.query(self.model)
            .filter(
                self.model.event_id == event_id,
                self.model.timeslot_id == timeslot_id,
                self.model.user_id == user_id,
            )
            .first()
        )

    def get_by_event_and_user(
        self, db: Session, *, event_id: str, user_id: str
    ) -> List[EventParticipant]:
        return (
            db.query(self.model)
            .filter(self.model.event_id == event_id, self.model.user_id == user_id)
            .all()
        )

    def get_multi_by_event(self, db: Session, *, event_id: str) -> List[EventParticipant]:
        return (
            db.query(self.model)
            .filter(self.model.event_id == event_id)
            .order_by(self.model.timeslot_id.asc(), self.model.joined_at.asc())
            .all()
        )

    def get_multi_by_user(
        self,
        db: Session,
        *,
        user_id: str,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[EventParticipant]:
        """A user's participations by event date, optionally within [from_date, to_date]."""
        query = db.query(self.model).filter(self.model.user_id == user_id)
        if from_date is not None:
            query = query.filter(self.model.date >= ensure_utc(from_date))
        if to_date is not None:
            query = query.filter(self.model.date <= ensure_utc(to_date))
        return query.order_by(self.model.date.asc()).offset(skip).limit(limit).all()

    def get_first_waitlisted(
        self, db: Session, *, event_id: str, timeslot_id: str
    ) -> Optional[EventParticipant]:
        """Earliest-joined waitlisted participant of a timeslot (FIFO head)."""
        return (
            db.query(self.model)
            .filter(
                self.model.event_id == event_id,
                self.model.timeslot_id == timeslot_id,
                self.model.is_waitlisted.is_(True),
            )
            .order_by(self.model.joined_at.asc(), self.model.id.asc())
            .first()
        )

    def create_participation(
        self,
        db: Session,
        *,
        event: Event,
        timeslot_id: str,
        user_id: str,
        is_waitlisted: bool,
        joined_at: datetime,
    ) -> EventParticipant:
        return self.create(
            db,
            obj_in={
                "event_id": event.id,
                "timeslot_id": timeslot_id,
                "user_id": user_id,
                "is_waitlisted": is_waitlisted,
                "joined_at": joined_at,
                "date": event.date,
            },
        )

    def promote(
        self, db: Session, *, db_obj: EventParticipant, promoted_at: datetime
    ) -> EventParticipant:
        return self.update(
            db, db_obj=db_obj, obj_in={"is_waitlisted": False, "joined_at": promoted_at}
        )

    def delete(self, db: Session, *, db_obj: EventParticipant) -> None:
        db.delete(db_obj)
        db.flush()


event_participant = CRUDEventParticipant(EventParticipant)
