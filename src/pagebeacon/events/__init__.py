"""
Event delivery infrastructure.

This package provides the event models, the durable retry queue, the
delivery pipeline and the periodic retry sweep.

Storage Format:
- Queue: ``events`` key of the long-lived store, a JSON array of stored
  events compressed with lz-string (``lz-string`` flag key set to "true")
"""

from pagebeacon.events.models import (
    Event,
    EventType,
    HomeShownEvent,
    StoredEvent,
    WatchTimeEvent,
    event_from_record,
)
from pagebeacon.events.store import QueueStore
from pagebeacon.events.delivery import DeliveryPipeline
from pagebeacon.events.replay import RetryScheduler, SweepResult

__all__ = [
    "Event",
    "EventType",
    "HomeShownEvent",
    "StoredEvent",
    "WatchTimeEvent",
    "event_from_record",
    "QueueStore",
    "DeliveryPipeline",
    "RetryScheduler",
    "SweepResult",
]
