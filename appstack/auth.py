"""Authentication collaborator: current user lookup and token handling."""

import logging
from typing import Any, Dict, Optional

import httpx

from appstack.exceptions import AppStackAuthError, AppStackError, AppStackNotFoundError

logger = logging.getLogger("appstack.client")


def raise_for_response(response: httpx.Response) -> None:
    """Translate an error response into an AppStack exception."""
    if response.status_code < 400:
        return

    try:
        data = response.json()
    except ValueError:
        data = response.text

    message = f"Request failed with status {response.status_code}"
    code = None
    if isinstance(data, dict):
        message = data.get("message") or data.get("detail") or message
        code = data.get("code")

    if response.status_code in (401, 403):
        raise AppStackAuthError(message, status=response.status_code, code=code, data=data)
    if response.status_code == 404:
        raise AppStackNotFoundError(message, status=response.status_code, code=code, data=data)
    raise AppStackError(message, status=response.status_code, code=code, data=data)


class AuthModule:
    """Current-user access for an app."""

    def __init__(self, http_client: httpx.AsyncClient, app_id: str):
        self.http_client = http_client
        self.app_id = app_id

    async def me(self) -> Dict[str, Any]:
        """Get the current user.

        Returns:
            The user record, including its ``id``

        Raises:
            AppStackAuthError: If no valid token is set
        """
        response = await self.http_client.get(f"/apps/{self.app_id}/entities/User/me")
        raise_for_response(response)
        return response.json()

    def set_token(self, token: Optional[str]) -> None:
        """Set or clear the bearer token used for every request."""
        if token:
            self.http_client.headers["Authorization"] = f"Bearer {token}"
        else:
            self.http_client.headers.pop("Authorization", None)

    async def is_authenticated(self) -> bool:
        """Check whether the current token is accepted by the server."""
        try:
            await self.me()
            return True
        except AppStackError as e:
            logger.debug(f"Authentication check failed: {e}")
            return False
