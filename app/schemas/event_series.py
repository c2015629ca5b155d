# app/schemas/event_series.py
from typing import Annotated, Optional, List
from datetime import datetime

from pydantic import AfterValidator, BaseModel, Field

from app.constants.events import (
    MAX_EVENT_NAME_LENGTH,
    MAX_EVENT_DESCRIPTION_LENGTH,
    MAX_RECURRENCE_INTERVAL_WEEKS,
)
from app.schemas.common import Location, LocalTime, TimeslotInput


DAYS_OF_WEEK_DESCRIPTION = (
    "Weekdays numbered 0=Monday to 6=Sunday (Python weekday(), not JavaScript getDay())."
)


def _check_days_of_week(value: List[int]) -> List[int]:
    if not value:
        raise ValueError("At least one day of the week is required.")
    if any(day < 0 or day > 6 for day in value):
        raise ValueError("Days of the week must be between 0 (Monday) and 6 (Sunday).")
    return sorted(set(value))


DaysOfWeek = Annotated[List[int], AfterValidator(_check_days_of_week)]


class EventSeriesCreate(BaseModel):
    club_id: str = Field(..., json_schema_extra={"example": "club_a1b2c3d4e5"})
    name: str = Field(..., max_length=MAX_EVENT_NAME_LENGTH, json_schema_extra={"example": "Tuesday Social"})
    description: Optional[str] = Field(None, max_length=MAX_EVENT_DESCRIPTION_LENGTH)
    location: Location
    days_of_week: DaysOfWeek = Field(
        ..., description=DAYS_OF_WEEK_DESCRIPTION, json_schema_extra={"example": [0, 2, 4]}
    )
    interval: int = Field(1, ge=1, le=MAX_RECURRENCE_INTERVAL_WEEKS)
    start_date: datetime
    end_date: datetime
    start_time: LocalTime = Field(..., json_schema_extra={"example": "18:00"})
    end_time: LocalTime = Field(..., json_schema_extra={"example": "20:00"})
    timeslots: List[TimeslotInput] = Field(..., min_length=1)
    is_active: bool = False


class EventSeriesUpdate(BaseModel):
    # All fields are optional; the club cannot be changed.
    name: Optional[str] = Field(None, max_length=MAX_EVENT_NAME_LENGTH)
    description: Optional[str] = Field(None, max_length=MAX_EVENT_DESCRIPTION_LENGTH)
    location: Optional[Location] = None
    days_of_week: Optional[DaysOfWeek] = Field(None, description=DAYS_OF_WEEK_DESCRIPTION)
    interval: Optional[int] = Field(None, ge=1, le=MAX_RECURRENCE_INTERVAL_WEEKS)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    start_time: Optional[LocalTime] = None
    end_time: Optional[LocalTime] = None
    timeslots: Optional[List[TimeslotInput]] = Field(None, min_length=1)
    is_active: Optional[bool] = None


class EventSeries(BaseModel):
    id: str = Field(..., json_schema_extra={"example": "evs_c5a6d8e0f9b1"})
    club_id: str
    created_by: str
    name: str
    description: Optional[str] = None
    location_name: str
    location_address: Optional[str] = None
    location_place_id: Optional[str] = None
    timezone: str
    days_of_week: List[int] = Field(..., description=DAYS_OF_WEEK_DESCRIPTION)
    interval: int
    start_date: datetime
    end_date: datetime
    start_time: str
    end_time: str
    timeslot_template: List[TimeslotInput]
    is_active: bool
    on_series_end_task_id: Optional[str] = None
    on_next_batch_task_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class GenerateEventsRequest(BaseModel):
    start_date: datetime
    end_date: datetime


class GenerateEventsResponse(BaseModel):
    event_ids: List[str]
