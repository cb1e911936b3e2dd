"""Bounded FIFO queue operations over the shared analytics state."""

from typing import List, Optional

from appstack.analytics.models import DropReason, TrackEventData, TrackEventParams
from appstack.analytics.shared_state import SharedAnalyticsState
from appstack.page import PageContext


def enqueue(
    state: SharedAnalyticsState,
    params: TrackEventParams,
    page: Optional[PageContext] = None,
) -> Optional[DropReason]:
    """Stamp an event and append it to the tail of the queue.

    Returns:
        None if the event was queued, otherwise the reason it was dropped
    """
    if not state.config.enabled:
        return DropReason.DISABLED
    if len(state.requests_queue) >= state.config.max_queue_size:
        return DropReason.QUEUE_FULL

    state.requests_queue.append(
        TrackEventData(
            event_name=params.event_name,
            properties=params.properties,
            page_url=page.location_path if page is not None else None,
        )
    )
    return None


def drain(state: SharedAnalyticsState, count: int) -> List[TrackEventData]:
    """Remove and return up to ``count`` events from the head of the queue."""
    batch = state.requests_queue[:count]
    del state.requests_queue[:count]
    return batch


def drain_all(state: SharedAnalyticsState) -> List[TrackEventData]:
    """Remove and return every queued event."""
    batch = state.requests_queue
    state.requests_queue = []
    return batch
