"""Cached participant configuration and host login flag."""

from __future__ import annotations

import json
import logging
from typing import Callable

from pydantic import ValidationError

from pagebeacon.participant.models import ParticipantConfig
from pagebeacon.storage import NamespacedStorage
from pagebeacon.transport import CollectorClient, Failure, Maybe, Success

logger = logging.getLogger(__name__)

CONFIG_KEY = "config"
LOGGED_IN_HOST_KEY = "loggedInYouTube"


class ParticipantConfigCache:
    """Last participant configuration fetched from the collector."""

    def __init__(
        self,
        storage: NamespacedStorage,
        client: CollectorClient,
        headers: Callable[[], dict[str, str]],
    ) -> None:
        self.storage = storage
        self.client = client
        self._headers = headers

    def load_persisted(self) -> ParticipantConfig | None:
        """Return the cached config, or None if absent or unreadable."""
        item = self.storage.get(CONFIG_KEY)
        if not item:
            return None

        try:
            return ParticipantConfig.model_validate(json.loads(item))
        except (ValueError, RecursionError) as e:
            logger.warning("Error parsing config from local storage: %s", e)
            return None

    def save(self, config: ParticipantConfig) -> None:
        self.storage.save(CONFIG_KEY, config.model_dump_json(by_alias=True))

    def clear(self) -> None:
        self.storage.delete(CONFIG_KEY)

    async def fetch(self) -> Maybe[ParticipantConfig]:
        """Fetch the config with the current identity headers and cache it on success."""
        result = await self.client.get_participant_config(self._headers())

        if isinstance(result, Failure):
            logger.error("Could not get config: %s", result.message)
            return result

        try:
            config = ParticipantConfig.model_validate(result.value)
        except ValidationError as e:
            logger.error("Collector returned an invalid config: %s", e)
            return Failure(f"Invalid participant config: {e}")

        self.save(config)
        return Success(config)

    @property
    def logged_in_host(self) -> bool:
        return self.storage.get(LOGGED_IN_HOST_KEY) == "true"

    @logged_in_host.setter
    def logged_in_host(self, value: bool) -> None:
        self.storage.save(LOGGED_IN_HOST_KEY, "true" if value else "false")
