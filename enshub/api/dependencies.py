"""API dependencies: validated query parameters and app-owned components."""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, Query, Request

from enshub.core.config import Settings
from enshub.core.exceptions import ValidationError
from enshub.schemas.queries import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    AnalyticsQuery,
    EventQuery,
    Instant,
    NameQuery,
)


__all__ = [
    "AnalyticsParams",
    "AppSettings",
    "EventParams",
    "NameParams",
    "analytics_query",
    "event_query",
    "get_app_settings",
    "name_query",
]


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


def event_query(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Number of items to return"),
    offset: int = Query(0, ge=0, description="Number of items to skip"),
    from_: Optional[Instant] = Query(None, alias="from", description="Inclusive lower bound (ISO-8601)"),
    to: Optional[Instant] = Query(None, description="Inclusive upper bound (ISO-8601)"),
    chain_id: int | None = Query(None, alias="chainId", description="Exact chain id"),
) -> EventQuery:
    return EventQuery(limit=limit, offset=offset, from_=from_, to=to, chain_id=chain_id)


def name_query(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Number of items to return"),
    offset: int = Query(0, ge=0, description="Number of items to skip"),
    search: str | None = Query(None, description="Name substring or exact registrant address"),
    from_: Optional[Instant] = Query(None, alias="from", description="Registered on or after"),
    to: Optional[Instant] = Query(None, description="Registered on or before"),
) -> NameQuery:
    return NameQuery(limit=limit, offset=offset, search=search, from_=from_, to=to)


def analytics_query(
    request: Request,
    limit: int | None = Query(None, ge=1, description="Most recent registrations analysed"),
    from_: Optional[Instant] = Query(None, alias="from", description="Inclusive lower bound (ISO-8601)"),
    to: Optional[Instant] = Query(None, description="Inclusive upper bound (ISO-8601)"),
    chain_id: int | None = Query(None, alias="chainId", description="Exact chain id"),
) -> AnalyticsQuery:
    """
    Event filters for the analytics sample.

    The sample bound comes from the application settings, so it is checked
    here rather than in the Query declaration.
    """
    config = get_app_settings(request)
    sample = limit if limit is not None else config.analytics_default_sample
    if sample > config.analytics_max_sample:
        raise ValidationError(
            details=[
                {
                    "field": "limit",
                    "message": f"Input should be less than or equal to {config.analytics_max_sample}",
                }
            ]
        )
    return AnalyticsQuery(limit=sample, from_=from_, to=to, chain_id=chain_id)


# Type aliases for route signatures
EventParams = Annotated[EventQuery, Depends(event_query)]
NameParams = Annotated[NameQuery, Depends(name_query)]
AnalyticsParams = Annotated[AnalyticsQuery, Depends(analytics_query)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
