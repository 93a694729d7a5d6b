"""API module with routers, middleware and dependencies."""

from .app import create_api_app
from .dependencies import (
    analytics_query,
    event_query,
    name_query,
)


__all__ = [
    "analytics_query",
    "create_api_app",
    "event_query",
    "name_query",
]
