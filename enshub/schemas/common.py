"""Common schemas: errors, health and paginated envelopes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str = Field(..., description="HTTP reason phrase", examples=["Too Many Requests"])
    details: Optional[Any] = Field(
        default=None, description="Field-level validation details, when present"
    )

    model_config = {"json_schema_extra": {"example": {"error": "Unauthorized"}}}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall health status", examples=["ok", "degraded"])
    version: str = Field(..., description="Application version")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    checks: Dict[str, bool] = Field(default_factory=dict, description="Individual dependency checks")


class Pagination(BaseModel):
    """Pagination block of a page response."""

    limit: int = Field(..., description="Items per page")
    offset: int = Field(..., description="Current offset")
    total: int = Field(..., description="Total number of matching items")


class PageResponse(BaseModel, Generic[T]):
    """One page of results plus the total matching count."""

    data: List[T]
    pagination: Pagination

    @classmethod
    def from_page(cls, page) -> "PageResponse[T]":
        return cls(
            data=page.items,
            pagination=Pagination(limit=page.limit, offset=page.offset, total=page.total),
        )
