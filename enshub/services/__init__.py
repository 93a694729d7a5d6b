"""Business logic services."""

from . import analytics, export


__all__ = [
    "analytics",
    "export",
]
