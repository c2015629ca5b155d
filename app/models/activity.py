# app/models/activity.py
import uuid
from sqlalchemy import Column, String, UniqueConstraint, func
from app.db.base_class import Base
from app.db.types import UTCDateTime


class Activity(Base):
    """
    Audit trail entry for a series or event.

    Scheduled-change entries are unique per (resource, type, scheduled_at) so
    re-arming a transition never writes a second row.
    """
    __tablename__ = "activities"

    id = Column(String, primary_key=True, default=lambda: f"act_{uuid.uuid4().hex[:12]}")
    resource_id = Column(String, nullable=False, index=True)
    type = Column(String(100), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=True)
    scheduled_at = Column(UTCDateTime, nullable=False)
    created_by = Column(String, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("resource_id", "type", "scheduled_at", name="unique_activity_resource_type_time"),
    )
