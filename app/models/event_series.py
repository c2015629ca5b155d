# app/models/event_series.py
import uuid
from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, CheckConstraint, text, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base
from app.db.types import JSONBType, UTCDateTime


class EventSeries(Base):
    """
    Recurring activity template for a club.

    Recurrence: `days_of_week` (0=Monday .. 6=Sunday) every `interval` weeks,
    between `start_date` and `end_date`, at local `start_time`-`end_time` in
    `timezone`. Each generated event copies `timeslot_template`.

    `on_series_end_task_id` and `on_next_batch_task_id` hold the handles of the
    pending deactivation and next-batch generation tasks.
    """
    __tablename__ = "event_series"

    id = Column(String, primary_key=True, default=lambda: f"evs_{uuid.uuid4().hex[:12]}")
    club_id = Column(String, nullable=False, index=True)
    created_by = Column(String, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(String(300), nullable=True)

    # Location
    location_name = Column(String, nullable=False)
    location_address = Column(String, nullable=True)
    location_place_id = Column(String, nullable=True)
    timezone = Column(String(64), nullable=False)

    # Recurrence and schedule
    days_of_week = Column(JSONBType, nullable=False)
    interval = Column(Integer, nullable=False, server_default=text("1"))
    start_date = Column(UTCDateTime, nullable=False)
    end_date = Column(UTCDateTime, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)

    timeslot_template = Column(JSONBType, nullable=False)
    is_active = Column(Boolean, nullable=False, server_default=text("false"))

    on_series_end_task_id = Column(
        String, ForeignKey("scheduled_tasks.id", ondelete="SET NULL"), nullable=True
    )
    on_next_batch_task_id = Column(
        String, ForeignKey("scheduled_tasks.id", ondelete="SET NULL"), nullable=True
    )

    created_at = Column(UTCDateTime, nullable=False, server_default=func.now())
    updated_at = Column(UTCDateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    events = relationship(
        "Event",
        back_populates="event_series",
        cascade="all, delete-orphan",
    )
    on_series_end_task = relationship("ScheduledTask", foreign_keys=[on_series_end_task_id])
    on_next_batch_task = relationship("ScheduledTask", foreign_keys=[on_next_batch_task_id])

    __table_args__ = (
        CheckConstraint("interval >= 1", name="check_series_interval_positive"),
        CheckConstraint("start_date <= end_date", name="check_series_date_order"),
    )
