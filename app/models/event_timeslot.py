# app/models/event_timeslot.py
import uuid
from sqlalchemy import Column, String, Integer, ForeignKey, CheckConstraint, text
from sqlalchemy.orm import relationship
from app.db.base_class import Base
from app.db.types import JSONBType


class EventTimeslot(Base):
    """
    Bookable capacity bucket inside an event.

    Template fields are copied from the series when the event is generated;
    `num_participants` / `num_waitlisted` track the live occupancy and are
    bounded by database check constraints.
    """
    __tablename__ = "event_timeslots"

    id = Column(String, primary_key=True, default=lambda: f"ts_{uuid.uuid4().hex[:12]}")
    event_id = Column(String, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, server_default=text("0"))

    name = Column(String(100), nullable=True)
    type = Column(String(20), nullable=False)  # duration, start_end
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    duration = Column(Integer, nullable=True)  # minutes

    max_participants = Column(Integer, nullable=False)
    max_waitlist = Column(Integer, nullable=False, server_default=text("0"))
    permanent_participants = Column(JSONBType, nullable=False, default=list)

    num_participants = Column(Integer, nullable=False, server_default=text("0"), default=0)
    num_waitlisted = Column(Integer, nullable=False, server_default=text("0"), default=0)

    event = relationship("Event", back_populates="timeslots")

    __table_args__ = (
        CheckConstraint("num_participants >= 0", name="check_timeslot_participants_positive"),
        CheckConstraint("num_waitlisted >= 0", name="check_timeslot_waitlisted_positive"),
        CheckConstraint("num_participants <= max_participants", name="check_timeslot_participants_lte_max"),
        CheckConstraint("num_waitlisted <= max_waitlist", name="check_timeslot_waitlisted_lte_max"),
    )
