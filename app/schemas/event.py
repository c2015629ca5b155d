# app/schemas/event.py
from typing import Optional, List
from datetime import datetime

from pydantic import BaseModel, Field

from app.constants.events import MAX_EVENT_NAME_LENGTH, MAX_EVENT_DESCRIPTION_LENGTH
from app.schemas.common import Location, LocalTime, TimeslotInput, Timeslot


class EventCreate(BaseModel):
    """Input for a standalone event that does not belong to a series."""
    club_id: str = Field(..., json_schema_extra={"example": "club_a1b2c3d4e5"})
    name: str = Field(..., max_length=MAX_EVENT_NAME_LENGTH)
    description: Optional[str] = Field(None, max_length=MAX_EVENT_DESCRIPTION_LENGTH)
    location: Location
    date: datetime = Field(..., description="Any instant on the local day of the event.")
    start_time: LocalTime = Field(..., json_schema_extra={"example": "18:00"})
    end_time: LocalTime = Field(..., json_schema_extra={"example": "20:00"})
    timeslots: List[TimeslotInput] = Field(..., min_length=1)


class Event(BaseModel):
    id: str = Field(..., json_schema_extra={"example": "evt_c5a6d8e0f9b1"})
    event_series_id: Optional[str] = None
    club_id: str
    created_by: str
    name: str
    description: Optional[str] = None
    location_name: str
    location_address: Optional[str] = None
    location_place_id: Optional[str] = None
    timezone: str
    date: datetime
    start_time: str
    end_time: str
    status: str
    timeslots: List[Timeslot]
    on_event_start_task_id: Optional[str] = None
    on_event_end_task_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class EventParticipant(BaseModel):
    id: str
    event_id: str
    timeslot_id: str
    user_id: str
    joined_at: datetime
    date: datetime
    is_waitlisted: bool

    model_config = {"from_attributes": True}


class EventDetails(Event):
    participants: List[EventParticipant]


class ParticipatingEvent(Event):
    """An event together with the caller's own participation in it."""
    participation: EventParticipant


class TaskStatus(BaseModel):
    task_id: Optional[str] = None
    state: Optional[str] = None


class EventScheduleStatus(BaseModel):
    event_id: str
    start: TaskStatus
    end: TaskStatus


class SeriesScheduleStatus(BaseModel):
    event_series_id: str
    is_active: bool
    series_end: TaskStatus
    next_batch: TaskStatus
