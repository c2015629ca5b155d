# app/models/scheduled_task.py
import uuid
from sqlalchemy import Column, String, Text, Index, func
from app.db.base_class import Base
from app.db.types import JSONBType, UTCDateTime


class ScheduledTask(Base):
    """
    Durable, exactly-once deferred invocation of a named internal handler.

    The row id is the task handle stored on the owning series or event.
    States: pending, executed, canceled, failed.
    """
    __tablename__ = "scheduled_tasks"

    id = Column(String, primary_key=True, default=lambda: f"tsk_{uuid.uuid4().hex[:12]}")
    name = Column(String(100), nullable=False)
    payload = Column(JSONBType, nullable=False, default=dict)
    run_at = Column(UTCDateTime, nullable=False)
    state = Column(String(20), nullable=False, default="pending")
    error = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, server_default=func.now())
    completed_at = Column(UTCDateTime, nullable=True)

    __table_args__ = (
        Index("ix_scheduled_tasks_state_run_at", "state", "run_at"),
    )
