# app/crud/crud_event.py
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from app.constants.events import EventStatus
from app.crud.base import CRUDBase
from app.models.event import Event
from app.models.event_series import EventSeries
from app.models.event_timeslot import EventTimeslot
from app.schemas.event import EventCreate
from app.utils.dates import calendar_date, ensure_utc, local_time_to_utc


TEMPLATE_FIELDS = (
    "name",
    "type",
    "start_time",
    "end_time",
    "duration",
    "max_participants",
    "max_waitlist",
    "permanent_participants",
)


def _materialize_timeslots(template: Iterable[Dict[str, Any]]) -> List[EventTimeslot]:
    """Fresh timeslot rows (new ids, zeroed counters) from a template."""
    return [
        EventTimeslot(
            position=position,
            num_participants=0,
            num_waitlisted=0,
            **{field: slot.get(field) for field in TEMPLATE_FIELDS if field != "permanent_participants"},
            permanent_participants=list(slot.get("permanent_participants") or []),
        )
        for position, slot in enumerate(template)
    ]


class CRUDEvent(CRUDBase[Event, EventCreate, Any]):

    def get_with_timeslots(self, db: Session, id: str) -> Optional[Event]:
        return (
            db.query(self.model)
            .options(selectinload(self.model.timeslots))
            .filter(self.model.id == id)
            .first()
        )

    def get_by_series_and_date(
        self, db: Session, *, series_id: str, date: datetime
    ) -> Optional[Event]:
        return (
            db.query(self.model)
            .filter(
                self.model.event_series_id == series_id,
                self.model.date == ensure_utc(date),
            )
            .first()
        )

    def get_or_create_from_series(
        self, db: Session, *, series: EventSeries, date: datetime
    ) -> tuple[Event, bool]:
        """
        Return the series' event on `date`, creating it from the series template
        when missing. The second element is True when a new event was created.
        """
        existing = self.get_by_series_and_date(db, series_id=series.id, date=date)
        if existing:
            return existing, False

        db_obj = self.model(
            event_series_id=series.id,
            club_id=series.club_id,
            created_by=series.created_by,
            name=series.name,
            description=series.description,
            location_name=series.location_name,
            location_address=series.location_address,
            location_place_id=series.location_place_id,
            timezone=series.timezone,
            date=ensure_utc(date),
            start_time=series.start_time,
            end_time=series.end_time,
            status=EventStatus.NOT_STARTED,
            timeslots=_materialize_timeslots(series.timeslot_template),
        )
        db.add(db_obj)
        db.flush()
        return db_obj, True

    def create_with_owner(
        self, db: Session, *, obj_in: EventCreate, user_id: str
    ) -> Event:
        """Create a standalone event dated at its local start time."""
        tz_name = obj_in.location.timezone
        db_obj = self.model(
            club_id=obj_in.club_id,
            created_by=user_id,
            name=obj_in.name,
            description=obj_in.description,
            location_name=obj_in.location.name,
            location_address=obj_in.location.address,
            location_place_id=obj_in.location.place_id,
            timezone=tz_name,
            date=local_time_to_utc(obj_in.start_time, tz_name, calendar_date(obj_in.date, tz_name)),
            start_time=obj_in.start_time,
            end_time=obj_in.end_time,
            status=EventStatus.NOT_STARTED,
            timeslots=_materialize_timeslots(t.model_dump() for t in obj_in.timeslots),
        )
        db.add(db_obj)
        db.flush()
        return db_obj

    def get_multi_by_series(
        self,
        db: Session,
        *,
        series_id: str,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Event]:
        query = db.query(self.model).filter(self.model.event_series_id == series_id)
        if from_date is not None:
            query = query.filter(self.model.date >= ensure_utc(from_date))
        if to_date is not None:
            query = query.filter(self.model.date <= ensure_utc(to_date))
        return query.order_by(self.model.date.asc()).offset(skip).limit(limit).all()

    def get_all_by_series(self, db: Session, *, series_id: str) -> List[Event]:
        return db.query(self.model).filter(self.model.event_series_id == series_id).all()

    def get_timeslot(
        self, db: Session, *, event_id: str, timeslot_id: str, for_update: bool = False
    ) -> Optional[EventTimeslot]:
        query = db.query(EventTimeslot).filter(
            EventTimeslot.event_id == event_id,
            EventTimeslot.id == timeslot_id,
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def update_status(self, db: Session, *, db_obj: Event, status: str) -> Event:
        return self.update(db, db_obj=db_obj, obj_in={"status": status})

    def set_task_handles(self, db: Session, *, db_obj: Event, **handles: Any) -> Event:
        """Store or clear `on_event_start_task_id` / `on_event_end_task_id`."""
        return self.update(db, db_obj=db_obj, obj_in=handles)


event = CRUDEvent(Event)
