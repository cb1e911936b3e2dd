"""Shared fixtures for the AppStack SDK tests."""

import asyncio
import json
from typing import List
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from appstack.analytics.models import AnalyticsConfig
from appstack.analytics.shared_state import (
    ANALYTICS_SHARED_STATE_NAME,
    SharedAnalyticsState,
    get_shared_state_provider,
)

SERVER_URL = "https://api.example.com"
APP_ID = "test-app-id"


class ManualClock:
    """Stand-in for asyncio.sleep that only wakes sleepers on ``tick()``."""

    def __init__(self):
        self.sleeps: List[float] = []
        self._waiters: List[asyncio.Future] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter

    @property
    def sleeping(self) -> int:
        return len([w for w in self._waiters if not w.done()])

    async def tick(self) -> None:
        """Wake every sleeper, then let the loop run until they sleep again."""
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)
        await settle()


async def settle(rounds: int = 10) -> None:
    """Give pending tasks a few turns of the event loop."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def shutdown(state, clock: ManualClock) -> None:
    """Stop the drain loop and let it observe the stop."""
    state.is_processing = False
    await clock.tick()


class RecordingTransport:
    """httpx transport that records requests and replies with a fixed status."""

    def __init__(self, status_code: int = 200, user_id: str = "test-user-id"):
        self.status_code = status_code
        self.user_id = user_id
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/entities/User/me"):
            return httpx.Response(200, json={"id": self.user_id, "email": "user@example.com"})
        return httpx.Response(self.status_code, json={"message": "success"})

    def batch_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/analytics/track/batch")]

    def batch_bodies(self) -> List[dict]:
        return [json.loads(r.content) for r in self.batch_requests()]


@pytest.fixture
def shared_state():
    """The process-wide analytics state, reset in place around each test."""
    state = get_shared_state_provider().get_or_create(
        ANALYTICS_SHARED_STATE_NAME, SharedAnalyticsState
    )
    state.clear(
        AnalyticsConfig(enabled=True, max_queue_size=1000, throttle_time=1000, batch_size=2)
    )

    yield state

    state.clear()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def http_client(transport):
    return httpx.AsyncClient(
        base_url=f"{SERVER_URL}/api",
        transport=httpx.MockTransport(transport),
    )


@pytest.fixture
def mock_auth():
    auth = MagicMock()
    auth.me = AsyncMock(return_value={"id": "test-user-id"})
    return auth
