# app/crud/crud_event_series.py
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.event_series import EventSeries
from app.schemas.event_series import EventSeriesCreate, EventSeriesUpdate
from app.utils.dates import ensure_utc


def _location_columns(location) -> Dict[str, Any]:
    return {
        "location_name": location.name,
        "location_address": location.address,
        "location_place_id": location.place_id,
        "timezone": location.timezone,
    }


class CRUDEventSeries(CRUDBase[EventSeries, EventSeriesCreate, EventSeriesUpdate]):

    def create_with_owner(
        self, db: Session, *, obj_in: EventSeriesCreate, user_id: str
    ) -> EventSeries:
        db_obj = self.model(
            club_id=obj_in.club_id,
            created_by=user_id,
            name=obj_in.name,
            description=obj_in.description,
            days_of_week=list(obj_in.days_of_week),
            interval=obj_in.interval,
            start_date=ensure_utc(obj_in.start_date),
            end_date=ensure_utc(obj_in.end_date),
            start_time=obj_in.start_time,
            end_time=obj_in.end_time,
            timeslot_template=[t.model_dump() for t in obj_in.timeslots],
            is_active=obj_in.is_active,
            **_location_columns(obj_in.location),
        )
        db.add(db_obj)
        db.flush()
        return db_obj

    def update(
        self, db: Session, *, db_obj: EventSeries, obj_in: EventSeriesUpdate
    ) -> EventSeries:
        """Apply a partial update, flattening the nested location and timeslots."""
        update_data = obj_in.model_dump(exclude_unset=True)

        if "location" in update_data:
            update_data.pop("location")
            if obj_in.location is not None:
                update_data.update(_location_columns(obj_in.location))
        if "timeslots" in update_data:
            update_data.pop("timeslots")
            if obj_in.timeslots is not None:
                update_data["timeslot_template"] = [t.model_dump() for t in obj_in.timeslots]
        for key in ("start_date", "end_date"):
            if update_data.get(key) is not None:
                update_data[key] = ensure_utc(update_data[key])

        # Activation changes go through the orchestrator
        update_data.pop("is_active", None)
        # Omitted or explicit null leaves required columns untouched
        update_data = {k: v for k, v in update_data.items() if v is not None or k == "description"}

        return super().update(db, db_obj=db_obj, obj_in=update_data)

    def get_multi_by_club(
        self, db: Session, *, club_id: str, skip: int = 0, limit: int = 100
    ) -> List[EventSeries]:
        return (
            db.query(self.model)
            .filter(self.model.club_id == club_id)
            .order_by(self.model.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def set_active(self, db: Session, *, db_obj: EventSeries, is_active: bool) -> EventSeries:
        return super().update(db, db_obj=db_obj, obj_in={"is_active": is_active})

    def set_task_handles(self, db: Session, *, db_obj: EventSeries, **handles: Any) -> EventSeries:
        """Store or clear `on_series_end_task_id` / `on_next_batch_task_id`."""
        return super().update(db, db_obj=db_obj, obj_in=handles)


event_series = CRUDEventSeries(EventSeries)
