"""Tests for namespaced key/value storage."""

import json

import pytest

from pagebeacon.api import create_api
from pagebeacon.storage import JsonFileStore, MemoryStore, NamespacedStorage


@pytest.fixture
def backend():
    return MemoryStore()


@pytest.fixture
def storage(backend):
    return NamespacedStorage(backend)


def test_save_writes_namespaced_key(storage, backend):
    """Values are written under the private prefix only."""
    storage.save("participantCode", "P1")

    assert backend.get_item("pagebeacon-participantCode") == "P1"
    assert backend.get_item("participantCode") is None


def test_get_migrates_legacy_key(storage, backend):
    """A bare legacy key is copied into the namespace and removed."""
    backend.set_item("participantCode", "OLD")

    assert storage.get("participantCode") == "OLD"
    assert backend.get_item("pagebeacon-participantCode") == "OLD"
    assert backend.get_item("participantCode") is None


def test_get_prefers_namespaced_key(storage, backend):
    backend.set_item("participantCode", "OLD")
    backend.set_item("pagebeacon-participantCode", "NEW")

    assert storage.get("participantCode") == "NEW"
    # Legacy value untouched when the namespaced one exists
    assert backend.get_item("participantCode") == "OLD"


def test_save_removes_legacy_key(storage, backend):
    backend.set_item("config", "{}")

    storage.save("config", '{"arm": "control"}')

    assert backend.get_item("config") is None


def test_delete_removes_both_forms(storage, backend):
    backend.set_item("events", "legacy")
    backend.set_item("pagebeacon-events", "current")

    storage.delete("events")

    assert backend.keys() == []


def test_clean_only_touches_namespace(storage, backend):
    """Foreign keys sharing the medium survive a clean."""
    backend.set_item("somebody-else", "keep")
    storage.save("participantCode", "P1")
    storage.save("events", "[]")

    storage.clean()

    assert backend.keys() == ["somebody-else"]


def test_get_missing_returns_none(storage):
    assert storage.get("nope") is None


# ============================================================================
# JsonFileStore
# ============================================================================


def test_json_file_store_round_trip(tmp_path):
    store = JsonFileStore(tmp_path / "state" / "local.json")

    store.set_item("a", "1")
    store.set_item("b", "2")
    store.remove_item("a")

    reopened = JsonFileStore(tmp_path / "state" / "local.json")
    assert reopened.get_item("b") == "2"
    assert reopened.get_item("a") is None
    assert reopened.keys() == ["b"]


def test_json_file_store_sets_permissions(tmp_path):
    """Store file has 0600 permissions."""
    path = tmp_path / "local.json"
    JsonFileStore(path).set_item("participantCode", "P1")

    assert oct(path.stat().st_mode)[-3:] == "600"


def test_json_file_store_atomic_write(tmp_path):
    """Temp file should not exist after successful write."""
    path = tmp_path / "local.json"
    JsonFileStore(path).set_item("k", "v")

    assert path.exists()
    assert not path.with_suffix(".tmp").exists()
    assert json.loads(path.read_text()) == {"k": "v"}


def test_json_file_store_corrupted_file_reads_empty(tmp_path):
    path = tmp_path / "local.json"
    path.write_text("{ invalid json }")

    store = JsonFileStore(path)
    assert store.get_item("k") is None

    # Writing replaces the corrupted content
    store.set_item("k", "v")
    assert json.loads(path.read_text()) == {"k": "v"}


def test_json_file_store_non_object_reads_empty(tmp_path):
    path = tmp_path / "local.json"
    path.write_text("[1, 2, 3]")

    assert JsonFileStore(path).keys() == []


def test_json_file_store_oversized_number_reads_empty(tmp_path):
    path = tmp_path / "local.json"
    path.write_text('{"pagebeacon-events": ' + "9" * 5000 + "}")

    store = JsonFileStore(path)
    assert store.get_item("pagebeacon-events") is None
    assert store.keys() == []


def test_json_file_store_deeply_nested_file_reads_empty(tmp_path):
    path = tmp_path / "local.json"
    path.write_text("[" * 200000)

    assert JsonFileStore(path).get_item("k") is None


def test_identity_survives_unreadable_store_file(tmp_path, config):
    path = tmp_path / "local.json"
    path.write_text('{"pagebeacon-participantCode": ' + "9" * 5000 + "}")

    api = create_api(config, local_backend=JsonFileStore(path))

    assert api.get_auth() == ""
