"""Analytics module exposed on the SDK client."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Union

import httpx
from pydantic import ValidationError

from appstack.analytics.config import load_analytics_config
from appstack.analytics.deliverer import Deliverer
from appstack.analytics.lifecycle import LifecycleController
from appstack.analytics.models import (
    AnalyticsConfig,
    DropReason,
    PropertyValue,
    TrackEventParams,
)
from appstack.analytics.processor import BatchProcessor, SleepFunc
from appstack.analytics.queue import enqueue
from appstack.analytics.session import SessionContextResolver, UserLookup
from appstack.analytics.shared_state import (
    ANALYTICS_SHARED_STATE_NAME,
    SharedAnalyticsState,
    SharedStateProvider,
    get_shared_state_provider,
)
from appstack.page import PageContext

logger = logging.getLogger("appstack.analytics")


class AnalyticsModule:
    """Tracks usage events and delivers them in the background.

    All modules created in one process share a queue and a processor through
    the shared state provider. Events are best-effort telemetry: they can be
    dropped when the queue is full and are lost when a batch fails to send.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        server_url: str,
        app_id: str,
        auth: UserLookup,
        page: Optional[PageContext] = None,
        provider: Optional[SharedStateProvider] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize the analytics module and start processing if enabled.

        Args:
            http_client: SDK HTTP client, with base URL ``{server_url}/api``
            server_url: Server URL
            app_id: Application ID
            auth: Collaborator providing ``me()`` for the session user
            page: Page context, or None outside a browser-like host
            provider: Shared state provider, defaults to the process-wide one
            sleep: Coroutine used for the throttle pause
        """
        self._page = page
        self._provider = provider or get_shared_state_provider()
        self._state: SharedAnalyticsState = self._provider.get_or_create(
            ANALYTICS_SHARED_STATE_NAME,
            lambda: SharedAnalyticsState(config=load_analytics_config(page)),
        )

        self._session = SessionContextResolver(self._state, auth)
        self._deliverer = Deliverer(http_client, server_url, app_id, self._session, page)
        self._processor = BatchProcessor(self._state, sleep=sleep)
        self._lifecycle = LifecycleController(
            self._state, self._processor, self._deliverer, page
        )
        self._lifecycle.attach()

    @property
    def state(self) -> SharedAnalyticsState:
        return self._state

    @property
    def config(self) -> AnalyticsConfig:
        return self._state.config

    @property
    def deliverer(self) -> Deliverer:
        return self._deliverer

    @property
    def processor(self) -> BatchProcessor:
        return self._processor

    @property
    def lifecycle(self) -> LifecycleController:
        return self._lifecycle

    def track(
        self,
        event: Union[str, TrackEventParams],
        properties: Optional[Dict[str, PropertyValue]] = None,
    ) -> None:
        """Queue a usage event.

        Never raises. The event is silently dropped when analytics is
        disabled or the queue is full.

        Args:
            event: Event name, or a ``TrackEventParams``
            properties: Scalar event properties, when ``event`` is a name
        """
        if isinstance(event, TrackEventParams):
            params = event
        else:
            try:
                params = TrackEventParams(event_name=event, properties=properties)
            except ValidationError as e:
                logger.warning(f"Invalid analytics event {event!r} not tracked: {e}")
                return
        self.enqueue(params)

    def enqueue(self, params: TrackEventParams) -> Optional[DropReason]:
        """Queue an event and report why it was dropped, if it was."""
        return enqueue(self._state, params, self._page)

    def start(self) -> Optional[asyncio.Task]:
        """Start processing, e.g. when the module was created outside an event loop."""
        if not self._state.config.enabled:
            return None
        return self._lifecycle.start()

    def cleanup(self) -> None:
        """Stop processing and detach from the page.

        This stops delivery for every client sharing the analytics state.
        """
        self._lifecycle.cleanup()


def create_analytics_module(
    http_client: httpx.AsyncClient,
    server_url: str,
    app_id: str,
    auth: UserLookup,
    page: Optional[PageContext] = None,
    **kwargs,
) -> AnalyticsModule:
    """Create an analytics module bound to the shared analytics state."""
    return AnalyticsModule(http_client, server_url, app_id, auth, page=page, **kwargs)
