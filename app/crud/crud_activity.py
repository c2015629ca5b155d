# app/crud/crud_activity.py
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.activity import Activity
from app.utils.dates import ensure_utc


class CRUDActivity(CRUDBase[Activity, Any, Any]):

    def get_by_resource_type_and_time(
        self, db: Session, *, resource_id: str, type: str, scheduled_at: datetime
    ) -> Optional[Activity]:
        return (
            db.query(self.model)
            .filter(
                self.model.resource_id == resource_id,
                self.model.type == type,
                self.model.scheduled_at == ensure_utc(scheduled_at),
            )
            .first()
        )

    def get_or_create(
        self,
        db: Session,
        *,
        resource_id: str,
        type: str,
        scheduled_at: datetime,
        title: str,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Activity:
        """Return the activity for (resource, type, time), creating it on first call."""
        existing = self.get_by_resource_type_and_time(
            db, resource_id=resource_id, type=type, scheduled_at=scheduled_at
        )
        if existing:
            return existing
        return self.create(
            db,
            obj_in={
                "resource_id": resource_id,
                "type": type,
                "scheduled_at": ensure_utc(scheduled_at),
                "title": title,
                "description": description,
                "created_by": created_by,
            },
        )

    def get_multi_by_resource(self, db: Session, *, resource_id: str) -> List[Activity]:
        return (
            db.query(self.model)
            .filter(self.model.resource_id == resource_id)
            .order_by(self.model.scheduled_at.asc())
            .all()
        )


activity = CRUDActivity(Activity)
