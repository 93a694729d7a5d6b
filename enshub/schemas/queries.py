"""Validated filter and pagination parameters for event and name queries."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


DEFAULT_LIMIT = 50
MAX_LIMIT = 500

# Calendar date, a 'T', a time with seconds, then an optional zone
ISO_INSTANT = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})?")


def parse_instant(value: Any) -> Any:
    """Accept ISO-8601 date-time strings only; epochs and bare dates are rejected."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not ISO_INSTANT.fullmatch(value):
        raise ValueError("Input should be an ISO-8601 date-time such as 2024-01-01T00:00:00Z")
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


Instant = Annotated[datetime, BeforeValidator(parse_instant)]


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PageQuery(BaseModel):
    """Pagination shared by every list and export endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Number of items to return")
    offset: int = Field(default=0, ge=0, description="Number of items to skip")


class EventQuery(PageQuery):
    """Filters for registration, renewal and transfer events.

    ``from``/``to`` are inclusive bounds on the entity's canonical time field.
    """

    from_: Optional[Instant] = Field(default=None, alias="from", description="Inclusive lower bound")
    to: Optional[Instant] = Field(default=None, description="Inclusive upper bound")
    chain_id: Optional[int] = Field(default=None, alias="chainId", description="Exact chain id")

    @field_validator("from_", "to")
    @classmethod
    def normalize_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class AnalyticsQuery(EventQuery):
    """Event filters with a larger sample bound for derived analytics."""

    limit: int = Field(default=1000, ge=1, description="Most recent events analysed")


class NameQuery(PageQuery):
    """Filters for names: free-text search plus a registration-date range."""

    search: Optional[str] = Field(default=None, description="Name substring or exact registrant")
    from_: Optional[Instant] = Field(default=None, alias="from", description="Inclusive lower bound")
    to: Optional[Instant] = Field(default=None, description="Inclusive upper bound")

    @field_validator("from_", "to")
    @classmethod
    def normalize_instant(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v
