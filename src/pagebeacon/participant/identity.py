"""Participant identity and session id, backed by persistent storage."""

from __future__ import annotations

import logging
from typing import Callable

from pagebeacon.storage import NamespacedStorage

logger = logging.getLogger(__name__)

PARTICIPANT_CODE_KEY = "participantCode"
SESSION_UUID_KEY = "sessionUuid"
CACHED_CONFIG_SESSION_KEY = "cfg"

LogoutListener = Callable[[], None]


class IdentityState:
    """
    In-memory participant code and session id for one client instance.

    The participant code lives in the long-lived store, the session id in the
    session-scoped store. A session id only means something next to a
    non-empty participant code, so ``logout`` drops both together.
    """

    def __init__(
        self,
        local: NamespacedStorage,
        session: NamespacedStorage,
        on_reset: list[Callable[[], None]] | None = None,
        default_participant_code: str = "",
    ) -> None:
        self.local = local
        self.session = session
        self.participant_code = local.get(PARTICIPANT_CODE_KEY) or default_participant_code
        self.session_uuid = session.get(SESSION_UUID_KEY) or ""
        self._on_reset = list(on_reset or [])
        self._logout_listeners: list[LogoutListener] = []

    def set_auth(self, code: str) -> None:
        self.local.save(PARTICIPANT_CODE_KEY, code)
        self.participant_code = code

    def get_auth(self) -> str:
        return self.participant_code

    def get_session(self) -> str | None:
        return self.session_uuid or None

    def set_session(self, session_uuid: str) -> None:
        self.session.save(SESSION_UUID_KEY, session_uuid)
        self.session_uuid = session_uuid

    def headers(self, participant_code: str | None = None) -> dict[str, str]:
        """Request headers for the current identity, or for an explicit one."""
        code = self.participant_code if participant_code is None else participant_code
        return {
            "Content-Type": "application/json",
            "X-Participant-Code": code,
        }

    def register_reset(self, reset: Callable[[], None]) -> None:
        """Add local state (queue, caches) that ``logout`` must wipe."""
        self._on_reset.append(reset)

    def add_on_logout_listener(self, listener: LogoutListener) -> None:
        self._logout_listeners.append(listener)

    def logout(self) -> None:
        """
        Forget the participant.

        Storage is cleared before listeners run, so a listener re-reading
        storage never sees the old identity.
        """
        self.local.delete(PARTICIPANT_CODE_KEY)
        self.session.delete(SESSION_UUID_KEY)
        self.session.delete(CACHED_CONFIG_SESSION_KEY)
        for reset in self._on_reset:
            reset()
        self.participant_code = ""
        self.session_uuid = ""
        self.local.clean()
        self.session.clean()

        logger.debug("Logged out, notifying %d listener(s)", len(self._logout_listeners))
        for listener in self._logout_listeners:
            try:
                listener()
            except Exception:
                logger.exception("Logout listener %r failed", listener)
