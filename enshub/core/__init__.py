"""Core utilities: configuration, logging, errors and access governance."""

from .config import Settings, get_settings, settings
from .exceptions import (
    AdmissionRejected,
    AppException,
    EncodingFault,
    StoreUnavailable,
    Unauthorized,
    ValidationError,
)
from .governance import AccessGovernor, OriginPolicy
from .logging import get_logger, setup_logging
from .rate_limiter import FixedWindowRateLimiter, RateLimitResult, parse_rate_limit


__all__ = [
    "AccessGovernor",
    "AdmissionRejected",
    "AppException",
    "EncodingFault",
    "FixedWindowRateLimiter",
    "OriginPolicy",
    "RateLimitResult",
    "Settings",
    "StoreUnavailable",
    "Unauthorized",
    "ValidationError",
    "get_logger",
    "get_settings",
    "parse_rate_limit",
    "settings",
    "setup_logging",
]
