"""Resolves the identity attached to outgoing analytics events."""

import logging
from typing import Any, Protocol

from appstack.analytics.models import SessionContext
from appstack.analytics.shared_state import SharedAnalyticsState

logger = logging.getLogger("appstack.analytics")


class UserLookup(Protocol):
    """Anything that can return the current user, e.g. ``AuthModule``."""

    async def me(self) -> Any: ...


class SessionContextResolver:
    """Lazily resolves and caches the session context on the shared state."""

    def __init__(self, state: SharedAnalyticsState, auth: UserLookup):
        self._state = state
        self._auth = auth

    async def get_session_context(self) -> SessionContext:
        """Return the cached context, looking the user up on first use.

        A failed lookup leaves the cache empty and propagates, so the next
        flush tries again.
        """
        if self._state.session_context is None:
            user = await self._auth.me()
            user_id = user["id"] if isinstance(user, dict) else user.id
            self._state.session_context = SessionContext(user_id=str(user_id))
            logger.debug(f"Resolved analytics session for user {user_id}")
        return self._state.session_context
