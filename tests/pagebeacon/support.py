"""Test doubles shared by the pagebeacon test suite."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import httpx

from pagebeacon.events.models import Event, EventType, StoredEvent

API_URL = "https://collector.example.com"
START = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def success(value: object = True) -> httpx.Response:
    return httpx.Response(200, json={"kind": "Success", "value": value})


def failure(message: str, code: str | None = None, status: int = 400) -> httpx.Response:
    body: dict[str, object] = {"kind": "Failure", "message": message}
    if code:
        body["code"] = code
    return httpx.Response(status, json=body)


def page_view(**fields) -> Event:
    return Event(type=EventType.PAGE_VIEW, **fields)


def stored(
    event: Event,
    participant_code: str = "P1",
    last_attempt: datetime = START,
    attempts: int = 1,
    try_immediately: bool = False,
    persisted: bool = False,
) -> StoredEvent:
    return StoredEvent(
        event=event,
        api_url=API_URL,
        participant_code=participant_code,
        last_attempt=last_attempt,
        attempts=attempts,
        persisted=persisted,
        try_immediately=try_immediately,
    )


@dataclass
class _Timer:
    due_at: datetime
    period: float | None
    job: object
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class FakeScheduler:
    """Virtual clock; timers only fire inside ``advance``."""
    current: datetime = START
    timers: list[_Timer] = field(default_factory=list)

    def now(self) -> datetime:
        return self.current

    def call_later(self, delay: float, job) -> _Timer:
        timer = _Timer(self.current + timedelta(seconds=delay), None, job)
        self.timers.append(timer)
        return timer

    def call_every(self, period: float, job) -> _Timer:
        timer = _Timer(self.current + timedelta(seconds=period), period, job)
        self.timers.append(timer)
        return timer

    def skip(self, seconds: float) -> None:
        """Move the clock without firing timers."""
        self.current += timedelta(seconds=seconds)

    async def advance(self, seconds: float) -> None:
        target = self.current + timedelta(seconds=seconds)
        while True:
            due = [t for t in self.timers if not t.cancelled and t.due_at <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due_at)
            self.current = max(self.current, timer.due_at)
            if timer.period is None:
                self.timers.remove(timer)
            else:
                timer.due_at += timedelta(seconds=timer.period)
            await timer.job()
        self.current = target
