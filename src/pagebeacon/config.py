"""Client configuration loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from pagebeacon import __version__

DEFAULT_API_URL = "https://api.pagebeacon.dev"
DEFAULT_RETRY_DELAY = 60.0


def _default_storage_dir() -> Path:
    return Path.home() / ".pagebeacon"


@dataclass
class ClientConfig:
    """
    Settings shared by every component of one client instance.

    Fields:
    - api_url: Collector base URL (routes are appended to it)
    - storage_dir: Directory holding the long-lived and session stores
    - retry_delay: Seconds between retry sweeps, also the per-entry backoff
    - request_timeout: Timeout for each collector request, in seconds
    - retry_max_attempts: Drop queued events after this many attempts (None = never)
    - client_version: Stamped into every event as ``extensionVersion``
    """
    api_url: str = DEFAULT_API_URL
    storage_dir: Path = field(default_factory=_default_storage_dir)
    retry_delay: float = DEFAULT_RETRY_DELAY
    request_timeout: float = 10.0
    retry_max_attempts: int | None = None
    client_version: str = __version__

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Build configuration from ``PAGEBEACON_*`` environment variables."""
        storage_dir = os.getenv("PAGEBEACON_HOME")
        max_attempts = os.getenv("PAGEBEACON_MAX_ATTEMPTS", "")

        return cls(
            api_url=os.getenv("PAGEBEACON_API_URL", DEFAULT_API_URL).rstrip("/"),
            storage_dir=Path(storage_dir) if storage_dir else _default_storage_dir(),
            retry_delay=float(os.getenv("PAGEBEACON_RETRY_DELAY", str(DEFAULT_RETRY_DELAY))),
            retry_max_attempts=int(max_attempts) if max_attempts else None,
        )

    @property
    def local_store_path(self) -> Path:
        return self.storage_dir / "local.json"

    @property
    def session_store_path(self) -> Path:
        return self.storage_dir / "session.json"
