"""Event models and the durable retry envelope."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel


class EventType(str, Enum):
    PAGE_VIEW = "PAGE_VIEW"
    WATCH_TIME = "WATCH_TIME"
    HOME_SHOWN = "HOME_SHOWN"
    HOME_INJECTED_TILE_CLICKED = "HOME_INJECTED_TILE_CLICKED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Event(BaseModel):
    """
    Something observed on the page.

    Serialised with camelCase keys (``localUuid``, ``sessionUuid``, ...),
    which is what the collector expects. Unknown keys are kept so that a
    stored event written by another client version replays unchanged.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    type: EventType
    local_uuid: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_uuid: str = ""
    url: str = ""
    context: str | None = None
    extension_version: str = ""
    tab_active: bool | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    extra: dict[str, Any] | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict with wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class WatchTimeEvent(Event):
    type: EventType = EventType.WATCH_TIME
    seconds_watched: float = 0.0


class HomeShownEvent(Event):
    type: EventType = EventType.HOME_SHOWN
    default_recommendations: list[dict[str, Any]] = Field(default_factory=list)
    replacement_source: list[dict[str, Any]] = Field(default_factory=list)
    shown: list[dict[str, Any]] = Field(default_factory=list)

    def content_hash(self) -> str:
        """Identity of what was on screen, used by producers to skip re-sending it."""
        def ids(recommendations: list[dict[str, Any]]) -> str:
            return ",".join(str(r.get("videoId", "")) for r in recommendations)

        return "-".join([
            ids(self.default_recommendations),
            ids(self.replacement_source),
            ids(self.shown),
        ])


_EVENT_CLASSES: dict[str, type[Event]] = {
    EventType.WATCH_TIME.value: WatchTimeEvent,
    EventType.HOME_SHOWN.value: HomeShownEvent,
}


def event_from_record(data: dict[str, Any]) -> Event:
    """
    Rebuild an Event (or its typed subclass) from a wire record.

    Raises:
        ValueError: If the record does not describe a valid event
    """
    event_cls = _EVENT_CLASSES.get(str(data.get("type")), Event)
    try:
        return event_cls.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid event record: {e}") from e


def _parse_timestamp(value: object) -> datetime:
    if not isinstance(value, str) or not value:
        raise ValueError(f"lastAttempt must be an ISO timestamp, got {value!r}")

    # Older clients wrote JavaScript-style "...Z" timestamps
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _require(data: dict[str, object], key: str, kind: type) -> Any:
    value = data.get(key)
    # bool is an int subclass; attempts must not accept True/False
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ValueError(f"{key} must be {kind.__name__}, got {value!r}")
    return value


@dataclass
class StoredEvent:
    """
    Durable retry envelope around one event.

    ``persisted`` means the collector confirmed the event and the entry may be
    pruned; ``try_immediately`` makes the next sweep ignore the backoff window.
    """
    event: Event
    api_url: str
    participant_code: str
    last_attempt: datetime
    attempts: int = 1
    persisted: bool = False
    try_immediately: bool = True

    @property
    def local_uuid(self) -> str:
        return self.event.local_uuid

    def to_record(self) -> dict[str, object]:
        """Serialize to a queue record payload."""
        return {
            "event": self.event.to_payload(),
            "apiUrl": self.api_url,
            "participantCode": self.participant_code,
            "lastAttempt": self.last_attempt.isoformat(),
            "attempts": self.attempts,
            "persisted": self.persisted,
            "tryImmediately": self.try_immediately,
        }

    @classmethod
    def from_record(cls, data: object) -> "StoredEvent":
        """
        Deserialize from a queue record payload, checking every field.

        Raises:
            ValueError: If the record is malformed or missing required fields
        """
        if not isinstance(data, dict):
            raise ValueError(f"Stored event must be an object, got {type(data).__name__}")

        event_data = _require(data, "event", dict)

        return cls(
            event=event_from_record(event_data),
            api_url=_require(data, "apiUrl", str),
            participant_code=_require(data, "participantCode", str),
            last_attempt=_parse_timestamp(data.get("lastAttempt")),
            attempts=_require(data, "attempts", int),
            persisted=_require(data, "persisted", bool),
            try_immediately=_require(data, "tryImmediately", bool),
        )
