# app/crud/__init__.py

from .crud_activity import activity
from .crud_event import event
from .crud_event_participant import event_participant
from .crud_event_series import event_series
from .crud_scheduled_task import scheduled_task
