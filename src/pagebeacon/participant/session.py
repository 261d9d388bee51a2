"""Single-flight session bootstrap."""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from pagebeacon.errors import MissingIdentity, SessionCreationFailed
from pagebeacon.participant.identity import IdentityState
from pagebeacon.participant.models import Session
from pagebeacon.transport import CollectorClient, Failure, Maybe, Success

logger = logging.getLogger(__name__)


class SessionCoordinator:
    """
    Obtains the session id from the collector, at most one request at a time.

    The first event of a page load triggers session creation implicitly;
    bursts of events arriving together all wait on the same request instead
    of each creating an orphan session server-side.
    """

    def __init__(self, client: CollectorClient, identity: IdentityState) -> None:
        self.client = client
        self.identity = identity
        self._in_flight: asyncio.Task | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None

    async def _request_session(self) -> Maybe[Session]:
        try:
            result = await self.client.create_session(self.identity.headers())
            if isinstance(result, Failure):
                logger.error("Failed to create session: %s", result.message)
                return result
            try:
                return Success(Session.model_validate(result.value))
            except ValidationError as e:
                logger.error("Collector returned an invalid session: %s", e)
                return Failure(f"Invalid session payload: {e}")
        finally:
            # Cleared before any waiter resumes, so the next call starts fresh
            self._in_flight = None

    async def create_session(self) -> Maybe[Session]:
        """Create a session, joining the request already in flight if there is one."""
        if self._in_flight is None:
            self._in_flight = asyncio.get_running_loop().create_task(self._request_session())
        return await asyncio.shield(self._in_flight)

    async def new_session(self) -> str:
        """
        Create a session and adopt its id.

        Raises:
            MissingIdentity: If no participant code is set
            SessionCreationFailed: If the collector did not issue a session
        """
        if not self.identity.get_auth():
            raise MissingIdentity()

        result = await self.create_session()
        return self._adopt(result)

    async def ensure_session(self) -> None:
        """Make sure a session id is cached, creating one only if needed."""
        if self.identity.get_session():
            return

        if self._in_flight is not None:
            result = await asyncio.shield(self._in_flight)
            if not self.identity.get_session():
                self._adopt(result)
            return

        await self.new_session()

    def _adopt(self, result: Maybe[Session]) -> str:
        if isinstance(result, Success):
            self.identity.set_session(result.value.uuid)
            return result.value.uuid

        raise SessionCreationFailed(result.message)
