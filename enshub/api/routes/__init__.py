"""API routes package."""

from . import (
    analytics,
    events,
    exports,
    health,
    ws,
)


__all__ = [
    "analytics",
    "events",
    "exports",
    "health",
    "ws",
]
