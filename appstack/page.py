"""Page context used by the SDK when it runs inside a browser-like host.

A ``PageContext`` gives the SDK the pieces of a browser it relies on: the
current location, page visibility notifications and a fire-and-forget
beacon transport. Passing no page to the client means a non-browser context
(a server, a script, a worker) where none of these exist.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List, Optional, Set
from urllib.parse import parse_qs, urlsplit

import httpx

logger = logging.getLogger("appstack.page")

# Browsers cap a single beacon at 64 KiB
BEACON_MAX_BYTES = 64 * 1024

VisibilityListener = Callable[["VisibilityState"], None]


class VisibilityState(str, Enum):
    """Page visibility states."""

    VISIBLE = "visible"
    HIDDEN = "hidden"


class PageContext(ABC):
    """Base class for browser-like page contexts."""

    @property
    @abstractmethod
    def location_path(self) -> str:
        """Path component of the current page URL."""
        pass

    @property
    @abstractmethod
    def location_search(self) -> str:
        """Query string of the current page URL, including the leading '?'."""
        pass

    @property
    @abstractmethod
    def visibility_state(self) -> VisibilityState:
        """Current visibility of the page."""
        pass

    @abstractmethod
    def add_visibility_listener(self, listener: VisibilityListener) -> None:
        """Register a callback for visibility transitions."""
        pass

    @abstractmethod
    def remove_visibility_listener(self, listener: VisibilityListener) -> None:
        """Unregister a previously added visibility callback."""
        pass

    @abstractmethod
    def send_beacon(self, url: str, data: str) -> bool:
        """Queue ``data`` for delivery to ``url`` without waiting for a response.

        Returns:
            bool: True if the beacon was queued, False if it could not be
        """
        pass

    def get_query_param(self, name: str) -> Optional[str]:
        """Return the first value of a query parameter, or None."""
        values = parse_qs(self.location_search.lstrip("?")).get(name)
        return values[0] if values else None


class BrowserPage(PageContext):
    """In-process page backed by a URL, a listener list and httpx beacons.

    Hosts that embed the SDK in a page-like environment (webviews, notebook
    frontends, test harnesses) drive it through ``set_visibility_state``.
    """

    def __init__(
        self,
        url: str = "http://localhost/",
        visibility_state: VisibilityState = VisibilityState.VISIBLE,
        beacon_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the page.

        Args:
            url: Full URL of the page
            visibility_state: Initial visibility
            beacon_client: HTTP client used for beacons; one is created lazily if omitted
        """
        self._url = urlsplit(url)
        self._visibility_state = VisibilityState(visibility_state)
        self._listeners: List[VisibilityListener] = []
        self._beacon_client = beacon_client
        self._owns_beacon_client = beacon_client is None
        self._pending_beacons: Set[asyncio.Task] = set()

    @property
    def location_path(self) -> str:
        return self._url.path or "/"

    @property
    def location_search(self) -> str:
        return f"?{self._url.query}" if self._url.query else ""

    @property
    def visibility_state(self) -> VisibilityState:
        return self._visibility_state

    def navigate(self, url: str) -> None:
        """Change the current URL without a visibility transition."""
        self._url = urlsplit(url)

    def add_visibility_listener(self, listener: VisibilityListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_visibility_listener(self, listener: VisibilityListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_visibility_state(self, state: VisibilityState) -> None:
        """Transition visibility and notify listeners if it changed."""
        state = VisibilityState(state)
        if state == self._visibility_state:
            return
        self._visibility_state = state
        logger.debug(f"Page visibility changed to {state.value}")
        for listener in list(self._listeners):
            listener(state)

    def send_beacon(self, url: str, data: str) -> bool:
        if len(data.encode("utf-8")) > BEACON_MAX_BYTES:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, beacon not sent")
            return False

        task = loop.create_task(self._post_beacon(url, data))
        self._pending_beacons.add(task)
        task.add_done_callback(self._pending_beacons.discard)
        return True

    async def _post_beacon(self, url: str, data: str) -> None:
        if self._beacon_client is None:
            self._beacon_client = httpx.AsyncClient(timeout=30.0)
        try:
            await self._beacon_client.post(
                url, content=data, headers={"Content-Type": "text/plain;charset=UTF-8"}
            )
        except httpx.HTTPError as e:
            # Beacons carry no delivery confirmation
            logger.debug(f"Beacon to {url} failed: {e}")

    async def aclose(self) -> None:
        """Wait for in-flight beacons and close the beacon client if owned."""
        if self._pending_beacons:
            await asyncio.gather(*self._pending_beacons, return_exceptions=True)
        if self._owns_beacon_client and self._beacon_client is not None:
            await self._beacon_client.aclose()
            self._beacon_client = None
