"""Models for analytics events and configuration."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

PropertyValue = Union[str, int, float, bool, None]


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DropReason(str, Enum):
    """Why ``track()`` discarded an event instead of queueing it."""

    DISABLED = "disabled"
    QUEUE_FULL = "queue_full"


class DeliveryOutcome(str, Enum):
    """Which transport carried a flushed batch, if any."""

    BEACON = "beacon"
    FALLBACK = "fallback"
    FAILED = "failed"


class AnalyticsConfig(BaseModel):
    """Configuration for the analytics pipeline.

    Accepts camelCase keys (as sent in the ``analytics`` query parameter)
    as well as snake_case field names.
    """

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = True
    max_queue_size: int = Field(default=1000, alias="maxQueueSize")
    throttle_time: int = Field(default=1000, alias="throttleTime")  # milliseconds
    batch_size: int = Field(default=30, alias="batchSize")


class TrackEventParams(BaseModel):
    """An event as supplied by the caller of ``track()``."""

    event_name: str = Field(alias="eventName")
    properties: Optional[Dict[str, PropertyValue]] = None

    model_config = ConfigDict(populate_by_name=True)


class TrackEventData(TrackEventParams):
    """A queued event, stamped at enqueue time."""

    timestamp: str = Field(default_factory=utc_timestamp)
    page_url: Optional[str] = Field(default=None, alias="pageUrl")


class SessionContext(BaseModel):
    """Identity attached to every outgoing event."""

    model_config = ConfigDict(frozen=True)

    user_id: str


class WireEvent(BaseModel):
    """Event as sent to the batch ingestion endpoint."""

    event_name: str
    properties: Optional[Dict[str, PropertyValue]] = None
    timestamp: Optional[str] = None
    page_url: Optional[str] = None
    user_id: str

    @classmethod
    def from_event(cls, event: TrackEventData, session: SessionContext) -> WireEvent:
        return cls(
            event_name=event.event_name,
            properties=event.properties,
            timestamp=event.timestamp,
            page_url=event.page_url,
            user_id=session.user_id,
        )

    def to_payload(self) -> Dict[str, Any]:
        data = self.model_dump()
        if data["properties"] is None:
            data.pop("properties")
        return data


class BatchPayload(BaseModel):
    """Body of a batch ingestion request."""

    events: List[WireEvent] = Field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps({"events": [event.to_payload() for event in self.events]})
