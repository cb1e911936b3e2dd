"""Starts and stops analytics processing with page visibility."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from appstack.analytics.deliverer import Deliverer
from appstack.analytics.processor import BatchProcessor
from appstack.analytics.queue import drain_all
from appstack.analytics.shared_state import SharedAnalyticsState
from appstack.page import PageContext, VisibilityState

logger = logging.getLogger("appstack.analytics")


class LifecycleController:
    """Couples the batch processor to page visibility.

    When the page hides, the processor stops and the whole queue is flushed
    at once, since the page may be torn down before the next interval.
    """

    def __init__(
        self,
        state: SharedAnalyticsState,
        processor: BatchProcessor,
        deliverer: Deliverer,
        page: Optional[PageContext] = None,
    ):
        self._state = state
        self._processor = processor
        self._deliverer = deliverer
        self._page = page
        self._attached = False
        self._pending_flushes: Set[asyncio.Task] = set()

    def attach(self) -> None:
        """Subscribe to visibility changes and start processing, if enabled."""
        if not self._state.config.enabled:
            return
        if self._page is not None and not self._attached:
            self._page.add_visibility_listener(self.on_visibility_change)
            self._attached = True
        self.start()

    def start(self) -> Optional[asyncio.Task]:
        config = self._state.config
        return self._processor.start(
            self._deliverer.flush,
            throttle_time=config.throttle_time,
            batch_size=config.batch_size,
        )

    def on_visibility_change(self, visibility: VisibilityState) -> None:
        if visibility == VisibilityState.HIDDEN:
            self.on_hidden()
        elif visibility == VisibilityState.VISIBLE:
            self.on_visible()

    def on_hidden(self) -> Optional[asyncio.Task]:
        self._processor.stop()
        events = drain_all(self._state)
        if not events:
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop, {len(events)} analytics events dropped on hide")
            return None

        task = loop.create_task(self._deliverer.flush(events))
        self._pending_flushes.add(task)
        task.add_done_callback(self._on_flush_done)
        return task

    def on_visible(self) -> Optional[asyncio.Task]:
        return self.start()

    def _on_flush_done(self, task: asyncio.Task) -> None:
        self._pending_flushes.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Error flushing analytics on page hide: {error}")

    def cleanup(self) -> None:
        """Unsubscribe from visibility changes and stop the processor.

        The processor is shared, so this halts delivery for every client
        using the same shared state.
        """
        if self._page is not None and self._attached:
            self._page.remove_visibility_listener(self.on_visibility_change)
            self._attached = False
        self._processor.stop()
