"""Enrich, persist and post a single event."""

from __future__ import annotations

import logging

from pagebeacon.context import PageContext
from pagebeacon.errors import PageBeaconError
from pagebeacon.events.models import Event, EventType, StoredEvent
from pagebeacon.events.store import QueueStore
from pagebeacon.participant.identity import IdentityState
from pagebeacon.participant.session import SessionCoordinator
from pagebeacon.scheduler import Scheduler
from pagebeacon.transport import EVENT_ALREADY_EXISTS_OK, CollectorClient, Failure, Success

logger = logging.getLogger(__name__)


class DeliveryPipeline:
    """
    Delivers one event to the collector.

    When asked to retain the event, it is written to the queue before the
    network call, so a process dying mid-request still leaves it queued for
    the retry sweep.
    """

    def __init__(
        self,
        client: CollectorClient,
        identity: IdentityState,
        sessions: SessionCoordinator,
        queue: QueueStore,
        page: PageContext,
        scheduler: Scheduler,
        client_version: str,
    ) -> None:
        self.client = client
        self.identity = identity
        self.sessions = sessions
        self.queue = queue
        self.page = page
        self.scheduler = scheduler
        self.client_version = client_version

    async def post_event(
        self,
        event: Event,
        retain_for_retry: bool,
        *,
        participant_code: str | None = None,
        api_url: str | None = None,
    ) -> bool:
        """
        Enrich and submit an event.

        Args:
            event: Event to deliver (not mutated; a copy is enriched)
            retain_for_retry: Queue the event for the retry sweep before posting
            participant_code: Post under this identity instead of the current one
            api_url: Post to this collector instead of the configured one

        Returns:
            True if the collector has the event (new or already known)

        Raises:
            MissingIdentity: If a session must be created and no participant is set
            SessionCreationFailed: If a session must be created and the collector refuses
        """
        headers = self.identity.headers(participant_code)
        code = headers["X-Participant-Code"]

        if not code:
            logger.debug("Missing participant code, not posting event %s", event.local_uuid)
            return False

        enriched = event.model_copy(deep=True)
        if enriched.context is None:
            enriched.context = self.page.referrer
        enriched.extension_version = self.client_version
        enriched.tab_active = self.page.tab_active

        if not enriched.session_uuid:
            await self.sessions.ensure_session()
            enriched.session_uuid = self.identity.session_uuid

        if retain_for_retry:
            self.queue.append(StoredEvent(
                event=enriched,
                api_url=api_url or self.client.api_url,
                participant_code=code,
                last_attempt=self.scheduler.now(),
                attempts=1,
                persisted=False,
                try_immediately=True,
            ))

        if not enriched.url:
            enriched.url = self.page.url

        result = await self.client.post_event(enriched.to_payload(), headers, api_url=api_url)

        if isinstance(result, Success):
            self.queue.remove_event(enriched.local_uuid)
            return True

        if isinstance(result, Failure) and result.code == EVENT_ALREADY_EXISTS_OK:
            logger.debug("Collector already has event %s", enriched.local_uuid)
            self.queue.remove_event(enriched.local_uuid)
            return True

        logger.debug("Posting event %s failed: %s", enriched.local_uuid, result.message)
        return False

    async def send_page_view(self) -> bool:
        """Post a page view of the current location; failures are only logged."""
        event = Event(type=EventType.PAGE_VIEW, url=self.page.url, context=self.page.referrer)

        try:
            return await self.post_event(event, True)
        except PageBeaconError as e:
            logger.warning(
                "Failed to send page view event %s, will be retried later on: %s",
                event.local_uuid,
                e,
            )
            return False
