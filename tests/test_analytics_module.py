"""End-to-end tests for the analytics module over the shared state."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from appstack.analytics.models import AnalyticsConfig, DropReason, TrackEventParams
from appstack.analytics.module import AnalyticsModule, create_analytics_module
from appstack.page import BrowserPage, VisibilityState

from conftest import APP_ID, SERVER_URL, settle, shutdown


def make_module(http_client, mock_auth, clock, page=None):
    return create_analytics_module(
        http_client, SERVER_URL, APP_ID, mock_auth, page=page, sleep=clock.sleep
    )


def delivered_names(transport):
    return [[e["event_name"] for e in body["events"]] for body in transport.batch_bodies()]


def test_created_outside_loop_stays_idle(shared_state, http_client, mock_auth, clock):
    analytics = make_module(http_client, mock_auth, clock)

    analytics.track("queued-before-loop")

    assert analytics.state is shared_state
    assert shared_state.is_processing is False
    assert len(shared_state.requests_queue) == 1


@pytest.mark.asyncio
async def test_track_starts_processing(shared_state, http_client, mock_auth, clock):
    analytics = make_module(http_client, mock_auth, clock)

    assert analytics.track("test-event") is None
    assert shared_state.is_processing is True

    analytics.cleanup()
    await clock.tick()


@pytest.mark.asyncio
async def test_batches_drain_per_tick(shared_state, http_client, transport, mock_auth, clock):
    analytics = make_module(http_client, mock_auth, clock)

    for i in range(5):
        analytics.track(f"test-event {i}")
    assert len(shared_state.requests_queue) == 5

    await settle()
    assert len(shared_state.requests_queue) == 3

    await clock.tick()
    assert len(shared_state.requests_queue) == 1

    analytics.track("test-event 5")
    assert len(shared_state.requests_queue) == 2

    await clock.tick()
    assert len(shared_state.requests_queue) == 0

    analytics.cleanup()
    await clock.tick()
    assert shared_state.is_processing is False
    assert shared_state.processor_task.done()

    batches = delivered_names(transport)
    assert all(len(batch) <= 2 for batch in batches)
    assert [name for batch in batches for name in batch] == [f"test-event {i}" for i in range(6)]


@pytest.mark.asyncio
async def test_queue_bounded_when_not_draining(shared_state, http_client, mock_auth, clock):
    shared_state.config = AnalyticsConfig(max_queue_size=3, batch_size=2)
    analytics = make_module(http_client, mock_auth, clock)
    analytics.processor.stop()

    for i in range(5):
        analytics.track(f"e{i}")

    assert [e.event_name for e in shared_state.requests_queue] == ["e0", "e1", "e2"]
    assert analytics.enqueue(TrackEventParams(event_name="e5")) == DropReason.QUEUE_FULL
    await clock.tick()


@pytest.mark.asyncio
async def test_disabled_never_queues_or_starts(shared_state, http_client, mock_auth, clock):
    shared_state.config = AnalyticsConfig(enabled=False)
    page = BrowserPage()
    analytics = make_module(http_client, mock_auth, clock, page=page)

    for i in range(20):
        analytics.track(f"e{i}")

    assert shared_state.requests_queue == []
    assert shared_state.is_processing is False
    assert analytics.start() is None
    page.set_visibility_state(VisibilityState.HIDDEN)
    page.set_visibility_state(VisibilityState.VISIBLE)
    assert shared_state.is_processing is False


@pytest.mark.asyncio
async def test_hidden_page_flushes_everything_in_one_call(
    shared_state, http_client, mock_auth, clock
):
    shared_state.config = AnalyticsConfig(batch_size=30, throttle_time=60000)
    page = BrowserPage("https://app.example.com/home")
    analytics = make_module(http_client, mock_auth, clock, page=page)
    await settle()

    for i in range(7):
        analytics.track(f"e{i}")

    with patch.object(page, "send_beacon", return_value=True) as send_beacon:
        page.set_visibility_state(VisibilityState.HIDDEN)
        assert shared_state.requests_queue == []
        await settle()

    send_beacon.assert_called_once()
    body = json.loads(send_beacon.call_args.args[1])
    assert [e["event_name"] for e in body["events"]] == [f"e{i}" for i in range(7)]
    assert {e["page_url"] for e in body["events"]} == {"/home"}

    await clock.tick()
    analytics.cleanup()


@pytest.mark.asyncio
async def test_server_side_uses_http_fallback_once_per_batch(
    shared_state, http_client, transport, mock_auth, clock
):
    analytics = make_module(http_client, mock_auth, clock)
    analytics.track("a", {"plan": "pro"})
    analytics.track("b")

    await settle()

    assert len(transport.batch_requests()) == 1
    first_event = transport.batch_bodies()[0]["events"][0]
    assert first_event.pop("timestamp").endswith("Z")
    assert first_event == {
        "event_name": "a",
        "properties": {"plan": "pro"},
        "page_url": None,
        "user_id": "test-user-id",
    }

    await shutdown(shared_state, clock)


@pytest.mark.asyncio
async def test_instances_share_one_queue_and_loop(
    shared_state, http_client, transport, mock_auth, clock
):
    first = make_module(http_client, mock_auth, clock)
    second = make_module(http_client, mock_auth, clock)

    first.track("from-first-0")
    second.track("from-second-0")
    first.track("from-first-1")

    assert first.state is second.state
    assert clock.sleeping == 0
    await settle()
    assert clock.sleeping == 1

    await clock.tick()
    assert delivered_names(transport) == [["from-first-0", "from-second-0"], ["from-first-1"]]

    # disposing one instance halts delivery for both
    first.cleanup()
    await clock.tick()
    second.track("after-cleanup")
    await clock.tick()
    assert len(transport.batch_requests()) == 2


@pytest.mark.asyncio
async def test_session_failure_drops_batch_and_retries_next(
    shared_state, http_client, transport, clock
):
    auth = AsyncMock()
    auth.me = AsyncMock(side_effect=[RuntimeError("unauthorized"), {"id": "late-user"}])
    analytics = AnalyticsModule(http_client, SERVER_URL, APP_ID, auth, sleep=clock.sleep)

    analytics.track("lost-1")
    analytics.track("lost-2")
    await settle()
    assert transport.batch_requests() == []
    assert shared_state.session_context is None

    analytics.track("kept")
    await clock.tick()

    assert delivered_names(transport) == [["kept"]]
    assert shared_state.session_context.user_id == "late-user"
    await shutdown(shared_state, clock)


def test_invalid_properties_do_not_raise(shared_state, http_client, mock_auth, clock):
    analytics = make_module(http_client, mock_auth, clock)

    analytics.track("bad", {"nested": {"not": "scalar"}})

    assert shared_state.requests_queue == []
