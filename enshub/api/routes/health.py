"""Health check endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Response

from enshub.api.dependencies import AppSettings
from enshub.core.logging import get_logger
from enshub.database.connection import db_healthcheck
from enshub.database.session import DbSession
from enshub.schemas.common import HealthResponse


router = APIRouter(prefix="/health")

logger = get_logger("health")


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health status of the API and its event store.",
)
async def health_check(
    response: Response,
    db: DbSession,
    config: AppSettings,
) -> HealthResponse:
    """
    Report overall status and individual dependency checks.

    The endpoint itself always answers 200; a failing event store shows up
    as ``degraded`` so load balancers can tell a live process from a
    healthy one.
    """
    response.headers["Cache-Control"] = "no-store"

    checks = {"database": await db_healthcheck(db)}
    status = "ok" if all(checks.values()) else "degraded"
    if status != "ok":
        logger.warning(f"Health check degraded: {checks}")

    return HealthResponse(
        status=status,
        version=config.app_version,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the API process is alive.",
)
async def liveness_check() -> dict:
    """Kubernetes-style liveness probe."""
    return {"status": "alive"}
