"""Fixed-window rate limiting for inbound HTTP entry points.

The in-memory limiter keeps ``{count, reset_at}`` per key. ``hit`` contains
no awaits, so on the event loop each increment is atomic per key without
any locking. Stale keys are evicted by a periodic ``sweep``.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Protocol

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
    """Limit for one class of entry point."""

    name: str
    max_requests: int
    window_seconds: int


WEBHOOK_LIMIT = RateLimitConfig(name="webhook", max_requests=100, window_seconds=60)
API_LIMIT = RateLimitConfig(name="api", max_requests=60, window_seconds=60)
AUTH_LIMIT = RateLimitConfig(name="auth", max_requests=10, window_seconds=60)


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one admission check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: int

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers


class RateLimiter(Protocol):
    """Admission gate; a shared backend can replace the in-memory one."""

    def hit(self, key: str) -> RateLimitDecision:
        ...

    def sweep(self) -> int:
        ...


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """In-process fixed-window counter keyed by client."""

    def __init__(
        self,
        config: RateLimitConfig,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    def _key(self, client_key: str) -> str:
        return f"{self.config.name}:{client_key}"

    def hit(self, key: str) -> RateLimitDecision:
        now = self._clock()
        store_key = self._key(key)
        window = self._windows.get(store_key)

        if window is None or now >= window.reset_at:
            window = _Window(count=0, reset_at=now + self.config.window_seconds)
            self._windows[store_key] = window

        window.count += 1
        allowed = window.count <= self.config.max_requests
        retry_after = max(0, math.ceil(window.reset_at - now))

        if not allowed:
            logger.warning(
                "rate_limit_exceeded",
                limiter=self.config.name,
                client=key,
                count=window.count,
                retry_after=retry_after,
            )

        return RateLimitDecision(
            allowed=allowed,
            limit=self.config.max_requests,
            remaining=max(0, self.config.max_requests - window.count),
            reset_at=window.reset_at,
            retry_after_seconds=retry_after,
        )

    def sweep(self) -> int:
        """Evict expired windows. Returns the number removed."""
        now = self._clock()
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug("rate_limit_swept", limiter=self.config.name, evicted=len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)
