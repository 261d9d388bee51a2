"""The client facade: one instance per process, owning all mutable state."""

from __future__ import annotations

import logging

from pagebeacon.config import ClientConfig
from pagebeacon.context import PageContext
from pagebeacon.errors import RequestFailed
from pagebeacon.events.delivery import DeliveryPipeline
from pagebeacon.events.models import Event
from pagebeacon.events.replay import RetryScheduler, SweepResult
from pagebeacon.events.store import QueueStore
from pagebeacon.participant.config import ParticipantConfigCache
from pagebeacon.participant.identity import IdentityState, LogoutListener
from pagebeacon.participant.models import ParticipantConfig, Session
from pagebeacon.participant.session import SessionCoordinator
from pagebeacon.scheduler import AsyncioScheduler, Scheduler
from pagebeacon.storage import JsonFileStore, KeyValueStore, MemoryStore, NamespacedStorage
from pagebeacon.transport import CollectorClient, Failure, Maybe, Success

logger = logging.getLogger(__name__)


class Api:
    """
    Everything producers and UI components talk to.

    Built once at startup by ``create_api`` and kept for the lifetime of the
    process; components receive it by reference.
    """

    def __init__(
        self,
        config: ClientConfig,
        client: CollectorClient,
        identity: IdentityState,
        sessions: SessionCoordinator,
        queue: QueueStore,
        participant_config: ParticipantConfigCache,
        pipeline: DeliveryPipeline,
        retries: RetryScheduler,
        page: PageContext,
    ) -> None:
        self.config = config
        self.client = client
        self.identity = identity
        self.sessions = sessions
        self.queue = queue
        self.participant_config = participant_config
        self.pipeline = pipeline
        self.retries = retries
        self.page = page

    # Lifecycle

    def start(self) -> None:
        """Start the retry sweep (requires a running event loop)."""
        self.retries.start()

    async def aclose(self) -> None:
        self.retries.stop()
        await self.client.aclose()

    # Identity

    def set_auth(self, code: str) -> None:
        self.identity.set_auth(code)

    def get_auth(self) -> str:
        return self.identity.get_auth()

    def get_headers(self) -> dict[str, str]:
        return self.identity.headers()

    def add_on_logout_listener(self, listener: LogoutListener) -> None:
        self.identity.add_on_logout_listener(listener)

    def logout(self) -> None:
        self.identity.logout()

    async def check_participant_code(self, code: str) -> bool:
        result = await self.client.check_participant_code(code, self.get_headers())
        return isinstance(result, Success)

    # Sessions

    async def create_session(self) -> Maybe[Session]:
        return await self.sessions.create_session()

    async def new_session(self) -> str:
        return await self.sessions.new_session()

    def get_session(self) -> str | None:
        return self.identity.get_session()

    async def ensure_session(self) -> None:
        await self.sessions.ensure_session()

    # Events

    def set_tab_active(self, active: bool | None) -> None:
        self.page.set_tab_active(active)

    async def post_event(self, event: Event, retain_for_retry: bool) -> bool:
        return await self.pipeline.post_event(event, retain_for_retry)

    async def send_page_view(self) -> bool:
        return await self.pipeline.send_page_view()

    async def retry_now(self) -> SweepResult:
        return await self.retries.sweep()

    # Participant data

    async def get_config(self) -> Maybe[ParticipantConfig]:
        return await self.participant_config.fetch()

    async def get_channel_source(self, force: bool = False) -> str:
        """
        Channel whose videos replace the home recommendations.

        Raises:
            RequestFailed: If the collector does not return a channel
        """
        result = await self.client.get_channel_source(self.get_headers(), force=force)

        if isinstance(result, Failure):
            raise RequestFailed(f"Failed to get channel source: {result.message}", result.code)

        value = result.value
        if not isinstance(value, dict) or not value.get("channelId"):
            raise RequestFailed("Failed to get channel source: response has no channelId")

        return str(value["channelId"])


def create_api(
    config: ClientConfig,
    page: PageContext | None = None,
    *,
    local_backend: KeyValueStore | None = None,
    session_backend: KeyValueStore | None = None,
    scheduler: Scheduler | None = None,
    client: CollectorClient | None = None,
    participant_code: str = "",
) -> Api:
    """
    Wire up a client.

    Args:
        config: Client configuration
        page: Host page state (an empty one is created if omitted)
        local_backend: Long-lived store (default: JSON file in ``config.storage_dir``)
        session_backend: Session-scoped store (default: in-memory)
        scheduler: Timer facility (default: asyncio)
        client: Collector client (default: one for ``config.api_url``)
        participant_code: Identity to use when none is persisted
    """
    local = NamespacedStorage(local_backend or JsonFileStore(config.local_store_path))
    session = NamespacedStorage(session_backend or MemoryStore())
    scheduler = scheduler or AsyncioScheduler()
    client = client or CollectorClient(config.api_url, timeout=config.request_timeout)
    page = page or PageContext()

    queue = QueueStore(local)
    identity = IdentityState(local, session, default_participant_code=participant_code)
    participant_config = ParticipantConfigCache(local, client, identity.headers)
    identity.register_reset(queue.clear)
    identity.register_reset(participant_config.clear)

    sessions = SessionCoordinator(client, identity)
    pipeline = DeliveryPipeline(
        client, identity, sessions, queue, page, scheduler, config.client_version
    )
    retries = RetryScheduler(
        queue,
        pipeline,
        identity,
        scheduler,
        retry_delay=config.retry_delay,
        max_attempts=config.retry_max_attempts,
    )

    return Api(
        config=config,
        client=client,
        identity=identity,
        sessions=sessions,
        queue=queue,
        participant_config=participant_config,
        pipeline=pipeline,
        retries=retries,
        page=page,
    )
