# app/models/event_participant.py
import uuid
from sqlalchemy import Column, String, Boolean, ForeignKey, UniqueConstraint, Index, text
from sqlalchemy.orm import relationship
from app.db.base_class import Base
from app.db.types import UTCDateTime


class EventParticipant(Base):
    """
    A user's place in one timeslot of an event.

    `joined_at` orders the waitlist (FIFO) and is re-stamped on promotion.
    """
    __tablename__ = "event_participants"

    id = Column(String, primary_key=True, default=lambda: f"evp_{uuid.uuid4().hex[:12]}")
    event_id = Column(String, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    timeslot_id = Column(String, ForeignKey("event_timeslots.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, nullable=False, index=True)  # No FK - users live in another service

    joined_at = Column(UTCDateTime, nullable=False)
    date = Column(UTCDateTime, nullable=False)
    is_waitlisted = Column(Boolean, nullable=False, server_default=text("false"), default=False)

    event = relationship("Event", back_populates="participants")
    timeslot = relationship("EventTimeslot")

    __table_args__ = (
        UniqueConstraint("event_id", "timeslot_id", "user_id", name="unique_timeslot_user"),
        Index("ix_event_participants_event_user", "event_id", "user_id"),
        Index("ix_event_participants_user_date", "user_id", "date"),
    )
