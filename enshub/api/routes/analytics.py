"""Registration and renewal analytics routes."""

from __future__ import annotations

from typing import Any, Callable, List, Optional

from fastapi import APIRouter, Query

from enshub.api.dependencies import AnalyticsParams
from enshub.core.exceptions import ValidationError
from enshub.core.logging import get_logger
from enshub.database.session import DbSession
from enshub.repositories import events_orm
from enshub.services.analytics import RENEWAL_VIEWS, VIEWS, compute_views


router = APIRouter(prefix="/analytics")

logger = get_logger("api.routes.analytics")


def check_views(view: Optional[List[str]], registry: dict[str, Callable]) -> None:
    """Reject view names the registry does not offer."""
    unknown = [name for name in view or () if name not in registry]
    if unknown:
        raise ValidationError(
            details=[
                {"field": "view", "message": f"Unknown view {name!r}; expected one of {sorted(registry)}"}
                for name in unknown
            ]
        )


@router.get(
    "/registrations",
    summary="Registration analytics",
    description=(
        "Derived views over the most recent registrations matching the filters: "
        f"{', '.join(VIEWS)}. Repeat ``view`` to select a subset."
    ),
)
async def registration_analytics(
    db: DbSession,
    query: AnalyticsParams,
    view: Optional[List[str]] = Query(None, description="Views to compute (default: all)"),
) -> dict[str, Any]:
    check_views(view, VIEWS)

    records = await events_orm.recent_registrations(db, query)
    logger.debug(f"Computing analytics over {len(records)} registrations")

    return {
        "sampleSize": len(records),
        "views": compute_views(records, view),
    }


@router.get(
    "/renewals",
    summary="Renewal analytics",
    description=(
        "Derived views over the most recent renewals matching the filters: "
        f"{', '.join(RENEWAL_VIEWS)}."
    ),
)
async def renewal_analytics(
    db: DbSession,
    query: AnalyticsParams,
    view: Optional[List[str]] = Query(None, description="Views to compute (default: all)"),
) -> dict[str, Any]:
    check_views(view, RENEWAL_VIEWS)

    records = await events_orm.recent_renewals(db, query)
    logger.debug(f"Computing analytics over {len(records)} renewals")

    return {
        "sampleSize": len(records),
        "views": compute_views(records, view, RENEWAL_VIEWS),
    }
