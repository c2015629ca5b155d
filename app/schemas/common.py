# app/schemas/common.py
"""
Building blocks shared by the series and event schemas.

Only shape checks live here (formats, ranges, enum values). Rules that compare
fields against each other or against the clock are enforced in
`app.utils.validators` so they surface as InvalidScheduleError.
"""
from typing import Annotated, Optional, List, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AfterValidator, BaseModel, Field, field_validator

from app.constants.events import (
    TIME_FORMAT_REGEX,
    MAX_TIMESLOT_NAME_LENGTH,
    MIN_PARTICIPANTS,
    MAX_PARTICIPANTS,
    MIN_WAITLIST,
    MAX_WAITLIST,
    MAX_TIMESLOT_DURATION_MINUTES,
)


def _check_time_format(value: str) -> str:
    if not TIME_FORMAT_REGEX.match(value):
        raise ValueError("Time must be in HH:MM format on a quarter hour.")
    return value


LocalTime = Annotated[str, AfterValidator(_check_time_format)]


class Location(BaseModel):
    name: str = Field(..., json_schema_extra={"example": "Riverside Sports Hall"})
    address: Optional[str] = Field(None, json_schema_extra={"example": "12 River Rd, London"})
    place_id: Optional[str] = None
    timezone: str = Field(..., json_schema_extra={"example": "Europe/London"})

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            raise ValueError("Invalid timezone.")
        return v


class TimeslotInput(BaseModel):
    name: Optional[str] = Field(None, max_length=MAX_TIMESLOT_NAME_LENGTH)
    type: Literal["duration", "start_end"]
    start_time: Optional[LocalTime] = Field(None, json_schema_extra={"example": "18:00"})
    end_time: Optional[LocalTime] = Field(None, json_schema_extra={"example": "19:30"})
    duration: Optional[int] = Field(None, gt=0, le=MAX_TIMESLOT_DURATION_MINUTES)
    max_participants: int = Field(..., ge=MIN_PARTICIPANTS, le=MAX_PARTICIPANTS)
    max_waitlist: int = Field(0, ge=MIN_WAITLIST, le=MAX_WAITLIST)
    permanent_participants: List[str] = Field(default_factory=list, max_length=MAX_PARTICIPANTS)


class Timeslot(BaseModel):
    id: str
    position: int
    name: Optional[str] = None
    type: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration: Optional[int] = None
    max_participants: int
    max_waitlist: int
    permanent_participants: List[str]
    num_participants: int
    num_waitlisted: int

    model_config = {"from_attributes": True}
