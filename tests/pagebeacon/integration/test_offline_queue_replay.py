"""
End-to-end offline scenarios: events queued while the collector is
unreachable are delivered by the retry sweep once it comes back.
"""

import json

import httpx
import pytest
import respx

from pagebeacon.api import create_api
from pagebeacon.storage import JsonFileStore, MemoryStore
from tests.pagebeacon.support import API_URL, failure, page_view, success

pytestmark = [pytest.mark.asyncio, pytest.mark.respx(base_url=API_URL)]


async def test_offline_event_is_queued_then_replayed(respx_mock: respx.MockRouter, logged_in_api, scheduler):
    route = respx_mock.post("/api/event").mock(
        side_effect=[httpx.ConnectError("offline"), success()]
    )
    event = page_view()

    delivered = await logged_in_api.post_event(event, True)

    assert delivered is False
    [entry] = logged_in_api.queue.load()
    assert entry.local_uuid == event.local_uuid
    assert entry.attempts == 1
    assert entry.persisted is False
    assert entry.try_immediately is True
    assert entry.participant_code == "P1"
    assert entry.last_attempt == scheduler.now()

    logged_in_api.start()
    await scheduler.advance(0)

    assert route.call_count == 2
    assert logged_in_api.queue.load() == []
    replayed = json.loads(route.calls.last.request.content)
    assert replayed["localUuid"] == event.local_uuid
    assert replayed["sessionUuid"] == "S1"


async def test_failed_retry_waits_for_retry_delay(respx_mock: respx.MockRouter, logged_in_api, scheduler):
    route = respx_mock.post("/api/event").mock(
        side_effect=[
            httpx.ConnectError("offline"),
            httpx.ConnectError("still offline"),
            success(),
        ]
    )
    await logged_in_api.post_event(page_view(), True)

    first = await logged_in_api.retry_now()
    assert (first.delivered, first.retained) == (0, 1)
    [entry] = logged_in_api.queue.load()
    assert entry.attempts == 2
    assert entry.try_immediately is False

    scheduler.skip(30)
    early = await logged_in_api.retry_now()
    assert early.delivered == 0
    assert route.call_count == 2

    scheduler.skip(30)
    late = await logged_in_api.retry_now()
    assert late.delivered == 1
    assert route.call_count == 3
    assert logged_in_api.queue.load() == []


async def test_logout_discards_queued_events(respx_mock: respx.MockRouter, logged_in_api):
    route = respx_mock.post("/api/event").mock(side_effect=httpx.ConnectError("offline"))
    await logged_in_api.post_event(page_view(), True)
    await logged_in_api.post_event(page_view(), True)
    assert len(logged_in_api.queue.load()) == 2

    logged_in_api.logout()
    result = await logged_in_api.retry_now()

    assert logged_in_api.queue.load() == []
    assert result.delivered == 0
    assert route.call_count == 2


async def test_entries_are_dropped_while_logged_out(respx_mock: respx.MockRouter, logged_in_api, local_backend):
    route = respx_mock.post("/api/event").mock(side_effect=httpx.ConnectError("offline"))
    await logged_in_api.post_event(page_view(), True)

    # Identity forgotten without going through logout
    local_backend.remove_item("pagebeacon-participantCode")
    logged_in_api.identity.participant_code = ""

    result = await logged_in_api.retry_now()

    assert result.dropped == 1
    assert logged_in_api.queue.load() == []
    assert route.call_count == 1


async def test_already_stored_event_is_removed_on_retry(respx_mock: respx.MockRouter, logged_in_api):
    respx_mock.post("/api/event").mock(
        side_effect=[
            httpx.ConnectError("timeout after write"),
            failure("Event already exists", code="EVENT_ALREADY_EXISTS_OK", status=409),
        ]
    )
    await logged_in_api.post_event(page_view(), True)

    result = await logged_in_api.retry_now()

    assert result.delivered == 1
    assert logged_in_api.queue.load() == []


async def test_retry_uses_original_participant(respx_mock: respx.MockRouter, logged_in_api):
    route = respx_mock.post("/api/event").mock(
        side_effect=[httpx.ConnectError("offline"), success()]
    )
    await logged_in_api.post_event(page_view(), True)

    logged_in_api.set_auth("P2")
    await logged_in_api.retry_now()

    assert route.calls.last.request.headers["X-Participant-Code"] == "P1"
    assert logged_in_api.queue.load() == []


async def test_malformed_queue_reads_as_empty(logged_in_api, local_storage):
    local_storage.save("lz-string", "true")
    local_storage.save("events", "not really compressed")

    assert logged_in_api.queue.load() == []
    result = await logged_in_api.retry_now()
    assert result.retained == 0


async def test_queue_survives_restart(respx_mock: respx.MockRouter, config, page, scheduler, tmp_path):
    route = respx_mock.post("/api/event").mock(
        side_effect=[httpx.ConnectError("offline"), success()]
    )
    store_path = tmp_path / "state" / "local.json"

    first = create_api(
        config,
        page=page,
        local_backend=JsonFileStore(store_path),
        session_backend=MemoryStore(),
        scheduler=scheduler,
    )
    first.set_auth("P1")
    first.identity.set_session("S1")
    await first.post_event(page_view(), True)
    await first.aclose()

    second = create_api(
        config,
        page=page,
        local_backend=JsonFileStore(store_path),
        session_backend=MemoryStore(),
        scheduler=scheduler,
    )
    assert second.get_auth() == "P1"
    assert len(second.queue.load()) == 1

    second.start()
    await scheduler.advance(0)

    assert route.call_count == 2
    assert second.queue.load() == []
    await second.aclose()
