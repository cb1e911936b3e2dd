"""Process-wide shared state for analytics.

Every client instance constructed in the same process looks its analytics
state up by name, so they all feed one queue and one processor.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from appstack.analytics.models import AnalyticsConfig, SessionContext, TrackEventData

logger = logging.getLogger("appstack.analytics")

ANALYTICS_SHARED_STATE_NAME = "analytics"

T = TypeVar("T")

BatchHandler = Callable[[List[TrackEventData]], Awaitable[object]]


@dataclass
class ProcessorSettings:
    """Handler and pacing read by the drain loop on every iteration."""

    handler: BatchHandler
    throttle_time: int
    batch_size: int


@dataclass
class SharedAnalyticsState:
    """Queue, processor flag, cached session and config shared by all clients."""

    requests_queue: List[TrackEventData] = field(default_factory=list)
    is_processing: bool = False
    session_context: Optional[SessionContext] = None
    config: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    processor_task: Optional[asyncio.Task] = None
    processor_settings: Optional[ProcessorSettings] = None

    def clear(self, config: Optional[AnalyticsConfig] = None) -> None:
        """Reset every field in place, keeping the object identity."""
        self.requests_queue = []
        self.is_processing = False
        self.session_context = None
        self.config = config or AnalyticsConfig()
        self.processor_task = None
        self.processor_settings = None


class SharedStateProvider:
    """Name-keyed get-or-create store."""

    def __init__(self):
        self._instances: Dict[str, Any] = {}

    def get_or_create(self, name: str, factory: Callable[[], T]) -> T:
        """Return the instance stored under ``name``, creating it on first use.

        Later calls return the same object whatever factory they pass.
        """
        if name not in self._instances:
            logger.debug(f"Creating shared instance: {name}")
            self._instances[name] = factory()
        return self._instances[name]

    def reset(self) -> None:
        """Drop all stored instances. Intended for tests only."""
        self._instances.clear()


# Global provider instance
_provider: Optional[SharedStateProvider] = None


def get_shared_state_provider() -> SharedStateProvider:
    """Get or initialize the process-wide shared state provider."""
    global _provider

    if _provider is None:
        _provider = SharedStateProvider()

    return _provider
