"""Facebook Messenger Platform webhook receiver and Send API client."""

from messenger.client import Messenger
from messenger.config import Settings, get_settings
from messenger.models.events import EventCategory
from messenger.services.dispatcher import DispatchContext
from messenger.services.response import Response

__all__ = [
    "Messenger",
    "Settings",
    "get_settings",
    "EventCategory",
    "DispatchContext",
    "Response",
]
