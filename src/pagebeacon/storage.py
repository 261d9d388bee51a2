"""Key/value storage with a private namespace and legacy-key migration."""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Protocol

# Cross-platform file locking
if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

NAMESPACE = "pagebeacon-"


def _lock_file(file_handle) -> None:
    """Acquire exclusive lock on file (cross-platform)."""
    if sys.platform == "win32":
        msvcrt.locking(file_handle.fileno(), msvcrt.LK_LOCK, 1)
    else:
        fcntl.flock(file_handle.fileno(), fcntl.LOCK_EX)


def _unlock_file(file_handle) -> None:
    """Release lock on file (cross-platform)."""
    if sys.platform == "win32":
        msvcrt.locking(file_handle.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)


class KeyValueStore(Protocol):
    """Minimal string-to-string store, shaped like the browser storage API."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryStore:
    """Process-lifetime store (the session-scoped medium by default)."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class JsonFileStore:
    """
    Store backed by a single JSON object on disk.

    Every mutation rewrites the whole file atomically (temp file + rename)
    with owner-only permissions. The file is re-read on every access so that
    several processes sharing the directory see each other's writes.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (ValueError, RecursionError) as e:
            logger.warning("Corrupted store file %s, starting empty: %s", self.path, e)
            return {}
        except OSError as e:
            logger.warning("Failed to read store file %s: %s", self.path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Store file %s does not hold an object, starting empty", self.path)
            return {}

        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write: Write to temp file, then rename
        temp_path = self.path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            _lock_file(f)
            try:
                json.dump(data, f)
                f.flush()
                os.fsync(f.fileno())
            finally:
                _unlock_file(f)

        temp_path.replace(self.path)

        try:
            self.path.chmod(0o600)
        except PermissionError:
            logger.warning("Could not set permissions on %s (continuing)", self.path)

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def keys(self) -> list[str]:
        return list(self._read())


class NamespacedStorage:
    """
    View of a backend restricted to keys carrying our namespace prefix.

    Values written by older clients under the bare key are migrated forward
    the first time they are read.
    """

    def __init__(self, backend: KeyValueStore, namespace: str = NAMESPACE) -> None:
        self.backend = backend
        self.namespace = namespace

    def get(self, key: str) -> str | None:
        current = self.backend.get_item(self.namespace + key)
        if current:
            return current

        legacy = self.backend.get_item(key)
        if legacy:
            logger.debug("Migrating legacy storage key %r into namespace", key)
            self.backend.set_item(self.namespace + key, legacy)
            self.backend.remove_item(key)
            return legacy

        return None

    def save(self, key: str, value: str) -> None:
        self.backend.remove_item(key)
        self.backend.set_item(self.namespace + key, value)

    def delete(self, key: str) -> None:
        self.backend.remove_item(key)
        self.backend.remove_item(self.namespace + key)

    def clean(self) -> None:
        """Remove every key in our namespace, leaving foreign keys alone."""
        for key in self.backend.keys():
            if key.startswith(self.namespace):
                self.backend.remove_item(key)
