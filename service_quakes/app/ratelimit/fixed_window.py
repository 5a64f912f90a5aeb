"""
Fixed-window rate limiter for the Quake Proxy.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import Request

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from service_quakes.app.caching.keys import rate_limit_key
from service_quakes.app.caching.store import KeyValueStore


DEFAULT_LIMIT = 3  # requests per window
DEFAULT_WINDOW_SECONDS = 60
UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate limit check. ``remaining`` is None when the store could not be consulted."""

    allowed: bool
    remaining: Optional[int]
    limit: int
    window_seconds: int

    def headers(self) -> Dict[str, str]:
        """Rate limiting metadata as response headers."""
        headers = {"X-RateLimit-Limit": str(self.limit)}
        if self.remaining is not None:
            headers["X-RateLimit-Remaining"] = str(self.remaining)
        return headers


class FixedWindowRateLimiter:
    """Counts requests per client in fixed, non-sliding windows held in the shared store."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        limit: int = DEFAULT_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.metrics = metrics
        self.logger = get_logger("quakes.rate_limiter")

    async def admit(self, client_id: str) -> RateLimitDecision:
        """Decide whether ``client_id`` may make another request in the current window.

        The first request of a window creates the counter with the window
        expiry; later requests increment it atomically without touching the
        expiry. Store failures admit the request with an unknown remainder.
        """
        key = rate_limit_key(client_id)

        try:
            current_value = await self.store.get(key)
            current_count = int(current_value) if current_value else 0

            if current_count == 0:
                if await self.store.set_if_absent(key, "1", self.window_seconds):
                    return self._decide(True, self.limit - 1)
                # A concurrent request opened the window first
                current_count = 1

            if current_count < self.limit:
                # The incremented count is authoritative; other requests may have landed since the read
                new_count = await self.store.incr(key, self.window_seconds)
                if new_count <= self.limit:
                    return self._decide(True, self.limit - new_count)

        except Exception as exc:
            self.logger.error("Rate limit check error, failing open", client_id=client_id, error=str(exc))
            self._record("store_error")
            if self.metrics:
                self.metrics.increment_counter("store_errors_total", operation="rate_limit")
            return RateLimitDecision(
                allowed=True,
                remaining=None,
                limit=self.limit,
                window_seconds=self.window_seconds,
            )

        self.logger.warning(
            "Rate limit exceeded",
            client_id=client_id,
            current_count=current_count,
            limit=self.limit
        )
        return self._decide(False, 0)

    def _decide(self, allowed: bool, remaining: int) -> RateLimitDecision:
        self._record("allowed" if allowed else "rejected")
        return RateLimitDecision(
            allowed=allowed,
            remaining=max(0, remaining),
            limit=self.limit,
            window_seconds=self.window_seconds,
        )

    def _record(self, decision: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("rate_limit_decisions_total", decision=decision)


def get_client_id(request: Request) -> str:
    """Extract the caller identity from the forwarded-address header."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop
    return UNKNOWN_CLIENT
