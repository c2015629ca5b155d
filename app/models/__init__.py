# app/models/__init__.py
# Import every model so Base.metadata knows all tables.
from .scheduled_task import ScheduledTask
from .activity import Activity
from .event_series import EventSeries
from .event import Event
from .event_timeslot import EventTimeslot
from .event_participant import EventParticipant
