"""Custom exceptions and centralized exception handlers."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .logging import get_logger


logger = get_logger("error")


class AppException(Exception):
    """Base application exception rendered as ``{"error": ...}``."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal Server Error"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        error: str | None = None,
        status_code: int | None = None,
        details: Any = None,
    ):
        self.message = message or self.message
        self.error = error or self.error
        self.status_code = status_code or self.status_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Response body. Details are only present when there are some."""
        body: dict[str, Any] = {"error": self.error}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppException):
    """Malformed or out-of-range request parameters."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "Bad Request"
    message = "Invalid request parameters"


class Unauthorized(AppException):
    """Missing or unknown API key."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Unauthorized"
    message = "A valid API key is required"


class AdmissionRejected(AppException):
    """Client exceeded its request quota for the current window."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error = "Too Many Requests"
    message = "Rate limit exceeded"


class StoreUnavailable(AppException):
    """The event store could not be reached. Not retried internally."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "Service Unavailable"
    message = "Event store temporarily unavailable"


class EncodingFault(AppException):
    """Export rows did not share one shape. Always a caller bug."""

    error = "Internal Server Error"
    message = "Export rows are not uniformly shaped"


def validation_details(exc: RequestValidationError) -> list[dict[str, str]]:
    """Flatten FastAPI validation errors into field-level details."""
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("query", "path", "body")]
        details.append({"field": ".".join(loc) or "request", "message": err.get("msg", "invalid")})
    return details


def register_exception_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers."""

    @app.exception_handler(AppException)
    async def app_exception_handler(
        request: Request, exc: AppException
    ) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                f"{type(exc).__name__}: {exc.message}",
                extra={"path": request.url.path, "method": request.method},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers={"X-Request-ID": getattr(request.state, "request_id", "unknown")},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationError(details=validation_details(exc))
        return await app_exception_handler(request, error)

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception(
            "Unhandled exception",
            extra={
                "request_id": getattr(request.state, "request_id", "unknown"),
                "path": request.url.path,
                "method": request.method,
            },
        )
        headers = {"X-Request-ID": getattr(request.state, "request_id", "unknown")}
        # Raised past the governance middleware, so CORS headers are added here
        governor = getattr(request.app.state, "governor", None)
        if governor is not None:
            headers.update(governor.cors_headers(request.headers.get("origin")))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal Server Error"},
            headers=headers,
        )
