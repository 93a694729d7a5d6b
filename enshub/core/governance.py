"""Access governance: origin policy, admission control and the API-key gate.

Evaluated for every request before any query work, in this order:

1. origin policy (preflight requests stop here with an empty 204),
2. fixed-window admission control keyed by client identity,
3. credential gate on the ``X-API-Key`` header.

Admission control runs before the credential gate, so requests with a bad or
missing key still consume the client's quota.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Iterable

from enshub.core.config import WILDCARD_ORIGIN, Settings
from enshub.core.exceptions import AdmissionRejected, Unauthorized
from enshub.core.logging import get_logger
from enshub.core.rate_limiter import (
    FixedWindowRateLimiter,
    RateLimitResult,
    parse_rate_limit,
)


logger = get_logger("core.governance")

API_KEY_HEADER = "X-API-Key"
ALLOW_HEADERS = f"Content-Type, Authorization, {API_KEY_HEADER}"
ALLOW_METHODS = "GET, POST, OPTIONS"
PREFLIGHT_METHOD = "OPTIONS"


@dataclass(frozen=True)
class OriginPolicy:
    """Computes the ``Access-Control-Allow-Origin`` value for a request."""

    allowlist: frozenset[str]

    @classmethod
    def from_origins(cls, origins: Iterable[str]) -> "OriginPolicy":
        return cls(allowlist=frozenset(origins))

    @property
    def allow_any(self) -> bool:
        return WILDCARD_ORIGIN in self.allowlist

    def allowed_origin(self, origin: str | None) -> str:
        """Echo the origin when allowed, otherwise an empty value."""
        requested = origin or WILDCARD_ORIGIN
        if self.allow_any or requested in self.allowlist:
            return requested
        return ""

    def headers(self, origin: str | None) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.allowed_origin(origin),
            "Access-Control-Allow-Headers": ALLOW_HEADERS,
            "Access-Control-Allow-Methods": ALLOW_METHODS,
        }


class AccessGovernor:
    """Owns the per-client rate-limit table and the configured key set."""

    def __init__(
        self,
        origin_policy: OriginPolicy,
        rate_limiter: FixedWindowRateLimiter | None = None,
        api_keys: AbstractSet[str] = frozenset(),
    ):
        self.origin_policy = origin_policy
        self.rate_limiter = rate_limiter
        self.api_keys = frozenset(api_keys)

    @classmethod
    def from_settings(cls, config: Settings) -> "AccessGovernor":
        limiter = None
        if config.rate_limit_enabled:
            limit, window = parse_rate_limit(config.rate_limit)
            limiter = FixedWindowRateLimiter(
                limit=limit,
                window=window,
                max_clients=config.rate_limit_max_clients,
            )
        return cls(
            origin_policy=OriginPolicy.from_origins(config.cors_allowlist),
            rate_limiter=limiter,
            api_keys=config.api_keys,
        )

    @property
    def credentials_required(self) -> bool:
        return bool(self.api_keys)

    def cors_headers(self, origin: str | None) -> dict[str, str]:
        return self.origin_policy.headers(origin)

    def is_preflight(self, method: str) -> bool:
        return method.upper() == PREFLIGHT_METHOD

    def admit(
        self,
        identity: str,
        api_key: str | None,
        now: float | None = None,
    ) -> RateLimitResult | None:
        """
        Run admission control, then the credential gate.

        Returns:
            The rate-limit result, or None when rate limiting is disabled

        Raises:
            AdmissionRejected: client is over its quota for the current window
            Unauthorized: a key set is configured and the key is missing or unknown
        """
        result = None
        if self.rate_limiter is not None:
            result = self.rate_limiter.check(identity, now)
            if not result.allowed:
                logger.warning(
                    f"Rate limit exceeded for {identity}",
                    extra={"count": result.count, "limit": result.limit},
                )
                raise AdmissionRejected()

        self.check_credentials(api_key)
        return result

    def check_credentials(self, api_key: str | None) -> None:
        """Reject unless the key gate is open or the key is configured."""
        if not self.credentials_required:
            return
        if not api_key or api_key not in self.api_keys:
            logger.warning("Rejected request with missing or unknown API key")
            raise Unauthorized()
