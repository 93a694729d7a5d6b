"""Pydantic schemas for API request/response validation."""

from .analytics import (
    AnalyticsSummary,
    ChainStat,
    CostBucket,
    DailyChainCounts,
    DailyCount,
    EventActivity,
    HourlyCount,
    NetworkSplit,
    WhaleEntry,
)
from .common import (
    ErrorResponse,
    HealthResponse,
    PageResponse,
    Pagination,
)
from .queries import (
    AnalyticsQuery,
    EventQuery,
    NameQuery,
    PageQuery,
)


__all__ = [
    "AnalyticsQuery",
    "AnalyticsSummary",
    "ChainStat",
    "CostBucket",
    "DailyChainCounts",
    "DailyCount",
    "ErrorResponse",
    "EventActivity",
    "EventQuery",
    "HealthResponse",
    "HourlyCount",
    "NameQuery",
    "NetworkSplit",
    "PageQuery",
    "PageResponse",
    "Pagination",
    "WhaleEntry",
]
