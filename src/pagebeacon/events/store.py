"""Durable retry queue persisted in the long-lived store."""

from __future__ import annotations

import json
import logging

from lzstring import LZString

from pagebeacon.errors import StorageCorrupted
from pagebeacon.events.models import StoredEvent
from pagebeacon.storage import NamespacedStorage

logger = logging.getLogger(__name__)

EVENTS_KEY = "events"
COMPRESSION_FLAG_KEY = "lz-string"

_lz = LZString()


def decode_queue(blob: str, compressed: bool) -> list[StoredEvent]:
    """
    Decode a persisted queue blob.

    Raises:
        StorageCorrupted: If the blob cannot be decompressed, parsed or mapped
    """
    if compressed:
        try:
            text = _lz.decompressFromBase64(blob)
        except Exception as e:  # lzstring signals bad input with assorted errors
            raise StorageCorrupted(f"Cannot decompress queue: {e}") from e
    else:
        text = blob

    if not text:
        raise StorageCorrupted("Queue blob decompressed to nothing")

    try:
        records = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise StorageCorrupted(f"Queue is not valid JSON: {e}") from e

    if not isinstance(records, list):
        raise StorageCorrupted(f"Queue must be a JSON array, got {type(records).__name__}")

    try:
        return [StoredEvent.from_record(record) for record in records]
    except ValueError as e:
        raise StorageCorrupted(f"Malformed queue entry: {e}") from e


class QueueStore:
    """
    Pending events and their retry metadata.

    ``load`` and ``save`` never raise: a corrupted queue reads as empty (and
    is discarded), a failed write leaves an empty placeholder behind rather
    than a stale or partial blob.
    """

    def __init__(self, storage: NamespacedStorage) -> None:
        self.storage = storage

    def load(self) -> list[StoredEvent]:
        try:
            blob = self.storage.get(EVENTS_KEY)
            if not blob:
                return []
            compressed = self.storage.get(COMPRESSION_FLAG_KEY) == "true"
            return decode_queue(blob, compressed)
        except StorageCorrupted as e:
            logger.warning("Discarding corrupted event queue: %s", e)
            self._write_placeholder()
            return []
        except OSError as e:
            logger.error("Failed to read event queue: %s", e)
            return []

    def save(self, entries: list[StoredEvent]) -> None:
        try:
            data = _lz.compressToBase64(json.dumps([entry.to_record() for entry in entries]))
            self.storage.save(COMPRESSION_FLAG_KEY, "true")
            self.storage.save(EVENTS_KEY, data)
        except Exception as e:
            logger.error("Failed to store events locally, forgetting about them: %s", e)
            self._write_placeholder()

    def _write_placeholder(self) -> None:
        try:
            self.storage.save(EVENTS_KEY, "")
        except OSError as e:
            logger.error("Failed to reset event queue: %s", e)

    def append(self, entry: StoredEvent) -> None:
        """Queue an entry, replacing any older entry for the same event."""
        entries = [e for e in self.load() if e.local_uuid != entry.local_uuid]
        entries.append(entry)
        self.save(entries)

    def remove_event(self, local_uuid: str) -> None:
        """Drop every entry carrying this event id, not just one copy."""
        entries = self.load()
        remaining = [e for e in entries if e.local_uuid != local_uuid]
        if len(remaining) != len(entries):
            self.save(remaining)

    def clear(self) -> None:
        self.storage.delete(EVENTS_KEY)
        self.storage.delete(COMPRESSION_FLAG_KEY)
