"""Data access layer repositories.

Each repository module provides async functions that read from the event
store through an ``AsyncSession`` and return immutable domain snapshots.

ORM-based repositories:
- events_orm: paginated registration, renewal, transfer and name queries
"""

from . import events_orm


__all__ = ["events_orm"]
