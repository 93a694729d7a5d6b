"""Fixed-window admission control keyed by client identity."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from enshub.core.logging import get_logger


logger = get_logger("core.rate_limiter")


@dataclass(frozen=True)
class RateLimitResult:
    """Result of rate limit check."""

    allowed: bool
    count: int
    remaining: int
    reset_at: float
    limit: int


@dataclass
class _Window:
    count: int
    window_start: float


class FixedWindowRateLimiter:
    """
    Fixed-window request counter per client identity.

    The counter resets when a full window has elapsed since the window
    started, so a client can send up to ``2 * limit`` requests clustered
    around a window boundary.

    Thread-safe: every read-modify-write of the table happens under one lock.
    """

    def __init__(
        self,
        limit: int = 100,
        window: float = 60.0,
        max_clients: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            limit: Maximum requests admitted per window
            window: Window length in seconds
            max_clients: Table size that triggers a sweep of expired windows
            clock: Time source used when ``now`` is not passed to ``check``
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")
        self.limit = limit
        self.window = window
        self.max_clients = max_clients
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, identity: str, now: float | None = None) -> RateLimitResult:
        """
        Count one request for ``identity`` and decide whether to admit it.

        Args:
            identity: Client identifier (e.g., IP address)
            now: Current time in seconds on the limiter's clock

        Returns:
            RateLimitResult with allowed status and remaining quota
        """
        if now is None:
            now = self._clock()

        with self._lock:
            entry = self._windows.get(identity)
            if entry is None or now - entry.window_start >= self.window:
                if entry is None and len(self._windows) >= self.max_clients:
                    self._sweep(now)
                entry = _Window(count=1, window_start=now)
                self._windows[identity] = entry
            else:
                entry.count += 1
            count = entry.count
            window_start = entry.window_start

        allowed = count <= self.limit
        if not allowed:
            logger.debug(f"Client {identity} over limit ({count}/{self.limit})")

        return RateLimitResult(
            allowed=allowed,
            count=count,
            remaining=max(self.limit - count, 0),
            reset_at=window_start + self.window,
            limit=self.limit,
        )

    def _sweep(self, now: float) -> None:
        """Drop windows that have fully elapsed. Caller holds the lock."""
        expired = [
            key
            for key, entry in self._windows.items()
            if now - entry.window_start >= self.window
        ]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.info(f"Swept {len(expired)} expired rate-limit windows")


def parse_rate_limit(rate_string: str) -> Tuple[int, int]:
    """
    Parse rate limit string like "100/minute" or "10/second".

    Returns (limit, window_in_seconds)
    """
    parts = rate_string.lower().split("/")
    if len(parts) != 2:
        raise ValueError(f"Invalid rate limit format: {rate_string}")

    limit = int(parts[0])
    unit = parts[1].strip()

    windows = {
        "second": 1,
        "sec": 1,
        "s": 1,
        "minute": 60,
        "min": 60,
        "m": 60,
        "hour": 3600,
        "hr": 3600,
        "h": 3600,
        "day": 86400,
        "d": 86400,
    }

    if unit not in windows:
        raise ValueError(f"Unknown time unit: {unit}")

    return limit, windows[unit]
