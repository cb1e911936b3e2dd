"""Analytics configuration and logging setup.

Defaults can be overridden by a JSON object in the ``APPSTACK_ANALYTICS``
environment variable and then by the ``analytics`` query parameter of the
current page, e.g. ``?analytics={"batchSize":10,"throttleTime":500}``.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

from pydantic import ValidationError

from appstack.analytics.models import AnalyticsConfig
from appstack.page import PageContext

logger = logging.getLogger("appstack.analytics")

ANALYTICS_QUERY_PARAM = "analytics"
ANALYTICS_ENV_VAR = "APPSTACK_ANALYTICS"
ANALYTICS_LOG_LEVEL_ENV_VAR = "APPSTACK_ANALYTICS_LOG_LEVEL"

_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def set_analytics_log_level(level: Optional[int] = None) -> None:
    """Set the logging level for the analytics logger.

    Without an explicit level, reads APPSTACK_ANALYTICS_LOG_LEVEL
    (DEBUG, INFO, WARNING or ERROR). Unset or unrecognized values mean WARNING,
    so analytics stays quiet unless asked otherwise.

    Args:
        level: The logging level to set (overrides environment variable if provided)
    """
    if level is None:
        env_level = os.environ.get(ANALYTICS_LOG_LEVEL_ENV_VAR, "WARNING").upper()
        level = _LOG_LEVELS.get(env_level, logging.WARNING)

    logging.getLogger("appstack.analytics").setLevel(level)


def _parse_override(raw: Optional[str], source: str) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        logger.debug(f"Ignoring malformed analytics override from {source}")
        return None
    if not isinstance(value, dict):
        logger.debug(f"Ignoring non-object analytics override from {source}")
        return None
    return value


def get_analytics_config_from_env() -> Optional[Dict[str, Any]]:
    """Read the JSON override from the APPSTACK_ANALYTICS environment variable."""
    return _parse_override(os.environ.get(ANALYTICS_ENV_VAR), ANALYTICS_ENV_VAR)


def get_analytics_config_from_url_params(
    page: Optional[PageContext],
) -> Optional[Dict[str, Any]]:
    """Read the JSON override from the page's ``analytics`` query parameter.

    Returns:
        The decoded override, or None outside a page or when it is missing/malformed
    """
    if page is None:
        return None
    return _parse_override(page.get_query_param(ANALYTICS_QUERY_PARAM), "query string")


def _merge(base: AnalyticsConfig, override: Optional[Dict[str, Any]]) -> AnalyticsConfig:
    if not override:
        return base
    merged = base.model_dump()
    merged.update(override)
    try:
        return AnalyticsConfig.model_validate(merged)
    except ValidationError as e:
        logger.debug(f"Ignoring invalid analytics override: {e}")
        return base


def load_analytics_config(page: Optional[PageContext] = None) -> AnalyticsConfig:
    """Build the analytics configuration from defaults and overrides."""
    config = AnalyticsConfig()
    config = _merge(config, get_analytics_config_from_env())
    config = _merge(config, get_analytics_config_from_url_params(page))
    return config


set_analytics_log_level()
