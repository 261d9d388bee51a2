"""Periodic re-delivery of queued events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from pagebeacon.errors import PageBeaconError
from pagebeacon.events.delivery import DeliveryPipeline
from pagebeacon.events.models import StoredEvent
from pagebeacon.events.store import QueueStore
from pagebeacon.participant.identity import IdentityState
from pagebeacon.scheduler import Cancellable, Scheduler

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    delivered: int = 0
    dropped: int = 0
    retained: int = 0
    skipped: bool = False


class RetryScheduler:
    """
    Drains the durable queue on a fixed period.

    Retries are spaced by ``retry_delay`` but never stop on their own unless
    ``max_attempts`` is set: an event is retried until the collector confirms
    it or its participant logs out.

    An entry is replayed under the participant code it was recorded with, but
    only while someone is logged in. With no current participant every due
    entry is dropped, as is an entry recorded without a code.
    """

    def __init__(
        self,
        queue: QueueStore,
        pipeline: DeliveryPipeline,
        identity: IdentityState,
        scheduler: Scheduler,
        retry_delay: float = 60.0,
        max_attempts: int | None = None,
    ) -> None:
        self.queue = queue
        self.pipeline = pipeline
        self.identity = identity
        self.scheduler = scheduler
        self.retry_delay = retry_delay
        self.max_attempts = max_attempts
        self._handles: list[Cancellable] = []
        self._sweeping = False

    @property
    def started(self) -> bool:
        return bool(self._handles)

    def start(self) -> None:
        """Sweep now (leftovers from a previous run) and then every period."""
        if self.started:
            return
        self._handles.append(self.scheduler.call_every(self.retry_delay, self._sweep_logged))
        self._handles.append(self.scheduler.call_later(0, self._sweep_logged))

    def stop(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()

    async def _sweep_logged(self) -> None:
        try:
            await self.sweep()
        except Exception:
            logger.exception("Failed to retry to post stored events")

    async def sweep(self) -> SweepResult:
        """Re-post every due entry, then rewrite the queue without delivered ones."""
        if self._sweeping:
            logger.debug("Retry sweep already running, skipping")
            return SweepResult(skipped=True)

        self._sweeping = True
        try:
            return await self._sweep()
        finally:
            self._sweeping = False

    async def _sweep(self) -> SweepResult:
        result = SweepResult()
        entries = self.queue.load()
        delay = timedelta(seconds=self.retry_delay)

        for entry in entries:
            due_at = entry.last_attempt + delay
            if self.scheduler.now() < due_at and not entry.try_immediately:
                continue

            entry.attempts += 1
            entry.try_immediately = False

            if not entry.participant_code or not self.identity.get_auth():
                # Nobody left to attribute the event to
                entry.persisted = True
                result.dropped += 1
                continue

            try:
                delivered = await self.pipeline.post_event(
                    entry.event,
                    False,
                    participant_code=entry.participant_code,
                    api_url=entry.api_url,
                )
            except PageBeaconError as e:
                logger.warning("Retry of event %s failed: %s", entry.local_uuid, e)
                delivered = False

            if delivered:
                entry.persisted = True
                result.delivered += 1
            elif self.max_attempts is not None and entry.attempts >= self.max_attempts:
                logger.warning(
                    "Giving up on event %s after %d attempts",
                    entry.local_uuid,
                    entry.attempts,
                )
                entry.persisted = True
                result.dropped += 1
            else:
                entry.last_attempt = self.scheduler.now()

        remaining = self._merge(entries)
        result.retained = len(remaining)
        self.queue.save(remaining)

        if result.delivered or result.dropped:
            logger.debug(
                "Retry sweep: %d delivered, %d dropped, %d queued",
                result.delivered,
                result.dropped,
                result.retained,
            )
        return result

    def _merge(self, swept: list[StoredEvent]) -> list[StoredEvent]:
        """
        Reconcile the swept entries with the queue as it is now.

        Entries queued while we were posting are kept. Swept entries that
        left the queue meanwhile (delivered live, or wiped by ``logout``)
        are not written back.
        """
        current = self.queue.load()
        current_ids = {entry.local_uuid for entry in current}
        swept_ids = {entry.local_uuid for entry in swept}
        kept = [e for e in swept if not e.persisted and e.local_uuid in current_ids]
        return kept + [e for e in current if e.local_uuid not in swept_ids]
