"""Fixtures for pagebeacon tests."""

import pytest

from pagebeacon.api import create_api
from pagebeacon.config import ClientConfig
from pagebeacon.context import PageContext
from pagebeacon.events.store import QueueStore
from pagebeacon.storage import MemoryStore, NamespacedStorage
from tests.pagebeacon.support import API_URL, FakeScheduler


@pytest.fixture(autouse=True)
def patch_home(tmp_path, monkeypatch):
    """Keep any default file stores out of the real home directory."""
    monkeypatch.setenv("HOME", str(tmp_path))


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def local_backend():
    return MemoryStore()


@pytest.fixture
def session_backend():
    return MemoryStore()


@pytest.fixture
def local_storage(local_backend):
    return NamespacedStorage(local_backend)


@pytest.fixture
def queue(local_storage):
    return QueueStore(local_storage)


@pytest.fixture
def page():
    return PageContext(
        url="https://www.youtube.com/watch?v=abc123",
        referrer="https://www.youtube.com/",
    )


@pytest.fixture
def config(tmp_path):
    return ClientConfig(api_url=API_URL, storage_dir=tmp_path, client_version="1.2.3")


@pytest.fixture
def make_api(config, page, local_backend, session_backend, scheduler):
    """Build a client sharing this test's storage, so 'restarts' can be simulated."""
    def factory(**overrides):
        return create_api(
            overrides.pop("config", config),
            page=overrides.pop("page", page),
            local_backend=local_backend,
            session_backend=overrides.pop("session_backend", session_backend),
            scheduler=scheduler,
            **overrides,
        )

    return factory


@pytest.fixture
def api(make_api):
    return make_api()


@pytest.fixture
def logged_in_api(api):
    """Client with participant P1 and an existing session."""
    api.set_auth("P1")
    api.identity.set_session("S1")
    return api
