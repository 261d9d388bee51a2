"""Behavioural event client with a durable retry queue."""

__version__ = "0.3.0"

from pagebeacon.api import Api, create_api
from pagebeacon.config import ClientConfig
from pagebeacon.context import PageContext
from pagebeacon.errors import (
    MissingIdentity,
    PageBeaconError,
    RequestFailed,
    SessionCreationFailed,
    StorageCorrupted,
)
from pagebeacon.events.models import Event, EventType, HomeShownEvent, WatchTimeEvent

__all__ = [
    "__version__",
    "Api",
    "create_api",
    "ClientConfig",
    "PageContext",
    "MissingIdentity",
    "PageBeaconError",
    "RequestFailed",
    "SessionCreationFailed",
    "StorageCorrupted",
    "Event",
    "EventType",
    "HomeShownEvent",
    "WatchTimeEvent",
]
