"""AppStack SDK - Python client for the AppStack backend platform."""

__version__ = "0.1.0"

from appstack.client import AppStackClient, create_client
from appstack.exceptions import (
    AppStackError,
    AppStackAuthError,
    AppStackNotFoundError,
    AppStackConfigError,
)

__all__ = [
    "AppStackClient",
    "create_client",
    "AppStackError",
    "AppStackAuthError",
    "AppStackNotFoundError",
    "AppStackConfigError",
]
