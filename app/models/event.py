# app/models/event.py
import uuid
from sqlalchemy import Column, String, ForeignKey, UniqueConstraint, Index, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base
from app.db.types import UTCDateTime


class Event(Base):
    __tablename__ = "events"

    id = Column(
        String, primary_key=True, default=lambda: f"evt_{uuid.uuid4().hex[:12]}"
    )
    event_series_id = Column(
        String, ForeignKey("event_series.id", ondelete="CASCADE"), nullable=True, index=True
    )
    club_id = Column(String, nullable=False, index=True)
    created_by = Column(String, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(String(300), nullable=True)

    location_name = Column(String, nullable=False)
    location_address = Column(String, nullable=True)
    location_place_id = Column(String, nullable=True)
    timezone = Column(String(64), nullable=False)

    date = Column(UTCDateTime, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    status = Column(String(20), nullable=False, default="not_started")  # not_started, in_progress, completed, cancelled

    on_event_start_task_id = Column(
        String, ForeignKey("scheduled_tasks.id", ondelete="SET NULL"), nullable=True
    )
    on_event_end_task_id = Column(
        String, ForeignKey("scheduled_tasks.id", ondelete="SET NULL"), nullable=True
    )

    created_at = Column(UTCDateTime, nullable=False, server_default=func.now())

    # Relationships
    event_series = relationship("EventSeries", back_populates="events")
    timeslots = relationship(
        "EventTimeslot",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventTimeslot.position",
    )
    participants = relationship(
        "EventParticipant",
        back_populates="event",
        cascade="all, delete-orphan",
    )
    on_event_start_task = relationship("ScheduledTask", foreign_keys=[on_event_start_task_id])
    on_event_end_task = relationship("ScheduledTask", foreign_keys=[on_event_end_task_id])

    __table_args__ = (
        UniqueConstraint("event_series_id", "date", name="unique_series_event_date"),
        Index("ix_events_club_date", "club_id", "date"),
    )
