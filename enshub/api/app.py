"""API application factory."""

from __future__ import annotations

import time
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from enshub.core.client_identity import get_client_ip
from enshub.core.config import Settings, get_settings
from enshub.core.exceptions import AppException, register_exception_handlers
from enshub.core.governance import API_KEY_HEADER, AccessGovernor
from enshub.core.logging import get_logger, request_id_var
from enshub.schemas.common import ErrorResponse

from .routes import analytics, events, exports, health, ws


logger = get_logger("api")


class AccessGovernanceMiddleware(BaseHTTPMiddleware):
    """Origin policy, admission control and the key gate, before any route runs.

    Rejections are rendered here because exceptions raised in middleware
    never reach the application's exception handlers.
    """

    async def dispatch(self, request: Request, call_next):
        governor: AccessGovernor = request.app.state.governor
        config: Settings = request.app.state.settings

        cors = governor.cors_headers(request.headers.get("origin"))
        if governor.is_preflight(request.method):
            return Response(status_code=204, headers=cors)

        identity = get_client_ip(request, config.trust_proxy_headers)
        try:
            result = governor.admit(identity, request.headers.get(API_KEY_HEADER))
        except AppException as e:
            return JSONResponse(status_code=e.status_code, content=e.to_dict(), headers=cors)

        response = await call_next(request)
        response.headers.update(cors)
        if result is not None:
            response.headers["X-RateLimit-Limit"] = str(result.limit)
            response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return response


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add request ID to all requests for tracing."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        request_id_var.set(request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its outcome and duration."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.monotonic()

        response = await call_next(request)

        duration = time.monotonic() - start_time

        # Log path only (query params may carry filters or keys)
        path = request.url.path

        logger.info(
            f"{request.method} {path} -> {response.status_code} ({duration:.3f}s)",
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": int(duration * 1000),
            },
        )

        return response


def create_api_app(
    config: Settings | None = None,
    governor: AccessGovernor | None = None,
    lifespan=None,
) -> FastAPI:
    """
    Create and configure the API application.

    Args:
        config: Settings to build with (defaults to the environment)
        governor: Access governor; built from ``config`` when omitted
        lifespan: Optional lifespan context manager for resource setup
    """
    config = config or get_settings()
    governor = governor or AccessGovernor.from_settings(config)

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="Query, analyse and export ENS registration, renewal and transfer events",
        root_path=config.root_path,
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
        lifespan=lifespan,
        responses={
            400: {"model": ErrorResponse, "description": "Bad Request"},
            401: {"model": ErrorResponse, "description": "Unauthorized"},
            429: {"model": ErrorResponse, "description": "Too Many Requests"},
            500: {"model": ErrorResponse, "description": "Internal Server Error"},
            503: {"model": ErrorResponse, "description": "Service Unavailable"},
        },
    )

    app.state.settings = config
    app.state.governor = governor

    # Last added runs first: request ID, then logging, then governance
    app.add_middleware(AccessGovernanceMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Register exception handlers
    register_exception_handlers(app)

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(events.router, tags=["Events"])
    app.include_router(analytics.router, tags=["Analytics"])
    app.include_router(exports.router, tags=["Export"])
    app.include_router(ws.router)

    return app
