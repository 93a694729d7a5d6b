"""Derived analytics schemas."""

from __future__ import annotations

from datetime import date as DateType
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AnalyticsModel(BaseModel):
    """Base for analytics rows; serialized with camelCase keys."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class WhaleEntry(AnalyticsModel):
    """A registrant whose cumulative spend reached the whale threshold."""

    address: str = Field(..., description="Registrant address")
    total_spent: float = Field(..., description="Total ETH spent (display precision)")
    name_count: int = Field(..., description="Names registered")
    avg_cost: float = Field(..., description="Average ETH per name")
    first_registration: datetime = Field(..., description="Earliest registration time")
    recent_activity: datetime = Field(..., description="Latest registration time")


class ChainStat(AnalyticsModel):
    """Registration count and volume for one chain."""

    chain_id: int
    chain_name: str
    chain_type: str
    count: int
    total_volume: float
    avg_cost: float
    unique_users: int


class CostBucket(AnalyticsModel):
    """Half-open cost range ``[min, max)``; ``max`` is None for the open-ended bucket."""

    range: str
    min: float
    max: Optional[float] = None
    count: int


class HourlyCount(AnalyticsModel):
    """Registrations within one UTC hour of the day."""

    hour: int = Field(..., ge=0, le=23)
    label: str
    registrations: int


class DailyChainCounts(AnalyticsModel):
    """Registrations per chain display name on one UTC day (sparse)."""

    date: DateType
    counts: Dict[str, int] = Field(default_factory=dict)


class NetworkSplit(AnalyticsModel):
    """Count and volume of one network class (L1 or L2)."""

    type: str
    registrations: int
    volume: float


class AnalyticsSummary(AnalyticsModel):
    """Headline numbers over the analysed sample."""

    total_registrations: int
    total_volume: float
    unique_registrants: int
    active_chains: int
    l2_share_pct: int


class DailyCount(AnalyticsModel):
    """Events on one UTC day."""

    date: DateType
    count: int


class EventActivity(AnalyticsModel):
    """Daily event series plus the count for the current UTC day."""

    today_count: int = Field(..., description="Events on the current UTC day")
    daily: List[DailyCount] = Field(default_factory=list)
