"""AppStack client."""

import logging
from typing import Optional

import httpx

from appstack.analytics import AnalyticsModule
from appstack.auth import AuthModule
from appstack.exceptions import AppStackConfigError
from appstack.page import PageContext

logger = logging.getLogger("appstack.client")

DEFAULT_SERVER_URL = "https://api.appstack.dev"


class AppStackClient:
    """Client for an AppStack app."""

    def __init__(
        self,
        app_id: str,
        server_url: str = DEFAULT_SERVER_URL,
        token: Optional[str] = None,
        page: Optional[PageContext] = None,
        timeout: float = 30.0,
        **kwargs,
    ):
        """Initialize the client.

        Args:
            app_id: Application ID
            server_url: Server URL
            token: Optional bearer token for the current user
            page: Page context when running inside a browser-like host
            timeout: Timeout for API calls in seconds
            **kwargs: Additional arguments to pass to the analytics module
        """
        if not app_id:
            raise AppStackConfigError("app_id is required")

        self.app_id = str(app_id)
        self.server_url = server_url.rstrip("/")
        self.page = page

        self.http_client = httpx.AsyncClient(
            base_url=f"{self.server_url}/api",
            timeout=timeout,
            headers={"X-App-Id": self.app_id},
        )

        self.auth = AuthModule(self.http_client, self.app_id)
        if token:
            self.auth.set_token(token)

        self.analytics = AnalyticsModule(
            self.http_client,
            self.server_url,
            self.app_id,
            self.auth,
            page=page,
            **kwargs,
        )
        logger.debug(f"Initialized AppStack client for app {self.app_id}")

    def set_token(self, token: Optional[str]) -> None:
        """Set the bearer token for all requests."""
        self.auth.set_token(token)

    def cleanup(self) -> None:
        """Stop background analytics processing and detach from the page."""
        self.analytics.cleanup()

    async def aclose(self) -> None:
        """Clean up and close the HTTP client."""
        self.cleanup()
        await self.http_client.aclose()

    async def __aenter__(self) -> "AppStackClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


def create_client(
    app_id: str,
    server_url: str = DEFAULT_SERVER_URL,
    token: Optional[str] = None,
    page: Optional[PageContext] = None,
    **kwargs,
) -> AppStackClient:
    """Create a client for an AppStack app."""
    return AppStackClient(app_id, server_url=server_url, token=token, page=page, **kwargs)
