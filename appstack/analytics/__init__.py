"""Usage analytics for the AppStack SDK.

Events passed to ``track()`` are queued in a bounded, process-wide queue and
delivered in batches in the background. Delivery is best-effort.
"""

from appstack.analytics.config import (
    get_analytics_config_from_url_params,
    load_analytics_config,
    set_analytics_log_level,
)
from appstack.analytics.deliverer import Deliverer
from appstack.analytics.lifecycle import LifecycleController
from appstack.analytics.models import (
    AnalyticsConfig,
    DeliveryOutcome,
    DropReason,
    SessionContext,
    TrackEventData,
    TrackEventParams,
    WireEvent,
)
from appstack.analytics.module import AnalyticsModule, create_analytics_module
from appstack.analytics.processor import BatchProcessor
from appstack.analytics.session import SessionContextResolver
from appstack.analytics.shared_state import (
    SharedAnalyticsState,
    SharedStateProvider,
    get_shared_state_provider,
)


__all__ = [
    "AnalyticsConfig",
    "AnalyticsModule",
    "BatchProcessor",
    "Deliverer",
    "DeliveryOutcome",
    "DropReason",
    "LifecycleController",
    "SessionContext",
    "SessionContextResolver",
    "SharedAnalyticsState",
    "SharedStateProvider",
    "TrackEventData",
    "TrackEventParams",
    "WireEvent",
    "create_analytics_module",
    "get_analytics_config_from_url_params",
    "get_shared_state_provider",
    "load_analytics_config",
    "set_analytics_log_level",
]
