"""Formats analytics batches and sends them over beacon or HTTP."""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from appstack.analytics.models import (
    BatchPayload,
    DeliveryOutcome,
    SessionContext,
    TrackEventData,
    WireEvent,
)
from appstack.analytics.session import SessionContextResolver
from appstack.page import PageContext

logger = logging.getLogger("appstack.analytics")

MAX_BEACON_PAYLOAD_BYTES = 60000


class Deliverer:
    """Sends batches to the ingestion endpoint.

    Delivery is best effort. A batch is tried once over the page's beacon and,
    when that is unavailable or refused, once over a regular POST. A batch
    that fails both ways is logged and lost.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        server_url: str,
        app_id: str,
        session: SessionContextResolver,
        page: Optional[PageContext] = None,
    ):
        """Initialize the deliverer.

        Args:
            http_client: SDK HTTP client, with base URL ``{server_url}/api``
            server_url: Server URL, used to build the absolute beacon URL
            app_id: Application ID
            session: Resolver for the session context
            page: Page context, or None outside a browser-like host
        """
        self.http_client = http_client
        self.app_id = app_id
        self.session = session
        self.page = page
        self.track_batch_path = f"/apps/{app_id}/analytics/track/batch"
        self.track_batch_url = f"{server_url.rstrip('/')}/api{self.track_batch_path}"

    def build_payload(self, events: List[TrackEventData], session: SessionContext) -> str:
        """Serialize events as a JSON batch body, tagged with the session user."""
        payload = BatchPayload(events=[WireEvent.from_event(event, session) for event in events])
        return payload.to_json()

    def _send_beacon(self, payload: str) -> bool:
        if self.page is None:
            return False
        if len(payload.encode("utf-8")) > MAX_BEACON_PAYLOAD_BYTES:
            logger.debug("Analytics payload too large for beacon, using HTTP fallback")
            return False
        return self.page.send_beacon(self.track_batch_url, payload)

    async def _send_fallback(self, payload: str) -> bool:
        try:
            response = await self.http_client.post(
                self.track_batch_path,
                content=payload,
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
            return True
        except (httpx.HTTPError, httpx.InvalidURL, RuntimeError) as e:
            # RuntimeError: the client was already closed
            logger.warning(f"Failed to send analytics batch: {e}")
            return False

    async def flush(self, events: List[TrackEventData]) -> DeliveryOutcome:
        """Send one batch of queued events.

        Raises:
            Exception: Only if the session context cannot be resolved
        """
        session_context = await self.session.get_session_context()
        payload = self.build_payload(events, session_context)

        if self._send_beacon(payload):
            logger.debug(f"Sent {len(events)} analytics events via beacon")
            return DeliveryOutcome.BEACON

        if await self._send_fallback(payload):
            logger.debug(f"Sent {len(events)} analytics events via HTTP")
            return DeliveryOutcome.FALLBACK
        return DeliveryOutcome.FAILED
