"""Single-flight batch processor that drains the shared analytics queue."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from appstack.analytics.queue import drain
from appstack.analytics.shared_state import (
    BatchHandler,
    ProcessorSettings,
    SharedAnalyticsState,
)

logger = logging.getLogger("appstack.analytics")

SleepFunc = Callable[[float], Awaitable[None]]

DEFAULT_THROTTLE_TIME = 1000
DEFAULT_BATCH_SIZE = 30


class BatchProcessor:
    """Drains the queue in batches, one batch per throttle interval.

    The ``is_processing`` flag on the shared state is the Idle/Running switch.
    Only one drain loop runs per shared state no matter how many processors
    are created over it.
    """

    def __init__(self, state: SharedAnalyticsState, sleep: SleepFunc = asyncio.sleep):
        """Initialize the processor.

        Args:
            state: Shared analytics state to drain
            sleep: Coroutine used for the throttle pause, in seconds
        """
        self._state = state
        self._sleep = sleep

    @property
    def is_running(self) -> bool:
        return self._state.is_processing

    def start(
        self,
        handler: BatchHandler,
        throttle_time: int = DEFAULT_THROTTLE_TIME,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> Optional[asyncio.Task]:
        """Start the drain loop unless it is already running.

        A loop that was stopped but has not reached its next check yet is
        resumed with the given handler and pacing.

        Args:
            handler: Coroutine function receiving each batch
            throttle_time: Pause after every iteration, in milliseconds
            batch_size: Maximum events per batch, coerced to at least 1

        Returns:
            The loop task, or None if nothing was started
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, analytics processor stays idle")
            return None

        task = self._state.processor_task
        alive = task is not None and not task.done() and task.get_loop() is loop
        if self._state.is_processing and alive:
            return None

        self._state.processor_settings = ProcessorSettings(
            handler=handler,
            throttle_time=max(0, int(throttle_time)),
            batch_size=max(1, int(batch_size)),
        )
        self._state.is_processing = True
        if alive:
            logger.debug("Analytics processor resumed")
            return task

        task = loop.create_task(self._run())
        self._state.processor_task = task
        return task

    def stop(self) -> None:
        """Ask the loop to exit at its next check. An in-flight batch completes."""
        self._state.is_processing = False

    async def _run(self) -> None:
        settings = self._state.processor_settings
        logger.debug(
            f"Analytics processor started "
            f"(throttle={settings.throttle_time}ms, batch_size={settings.batch_size})"
        )
        try:
            while self._state.is_processing:
                settings = self._state.processor_settings
                batch = drain(self._state, settings.batch_size)
                if batch:
                    try:
                        await settings.handler(batch)
                    except Exception as e:
                        # Dropped batches are not re-queued
                        logger.error(
                            f"Error processing analytics batch of {len(batch)} events: {e}"
                        )
                await self._sleep(settings.throttle_time / 1000)
        finally:
            # Cancelled or failed loops must not leave the state marked running
            if self._state.processor_task is asyncio.current_task():
                self._state.is_processing = False
            logger.debug("Analytics processor stopped")
