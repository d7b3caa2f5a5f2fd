"""OAuth access-token caching.

Tokens are cached per (environment, client_id) until shortly before their
declared expiry. Concurrent callers that find the cache empty collapse onto
one in-flight fetch.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

import structlog

from paypal_orchestrator.models.result import Ok, Result

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AccessToken:
    """Token as returned by PayPal."""

    value: str
    expires_in: int

    def __repr__(self) -> str:
        return f"AccessToken(expires_in={self.expires_in})"


TokenFetcher = Callable[[], Awaitable[Result[AccessToken]]]


class AccessTokenCache(Protocol):
    """Token cache interface; a shared backend can replace the in-memory one."""

    async def get_or_fetch(self, key: str, fetch: TokenFetcher) -> Result[AccessToken]:
        ...

    async def invalidate(self, key: str) -> None:
        ...


class InMemoryAccessTokenCache:
    """Process-local cache with per-key single-flight refresh."""

    def __init__(
        self,
        refresh_margin_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.refresh_margin_seconds = refresh_margin_seconds
        self._clock = clock
        self._tokens: dict[str, tuple[AccessToken, float]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _fresh(self, key: str) -> AccessToken | None:
        entry = self._tokens.get(key)
        if entry is None:
            return None
        token, expires_at = entry
        if self._clock() >= expires_at - self.refresh_margin_seconds:
            return None
        return token

    async def get_or_fetch(self, key: str, fetch: TokenFetcher) -> Result[AccessToken]:
        token = self._fresh(key)
        if token is not None:
            return Ok(token)

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            # Another caller may have refreshed while we waited
            token = self._fresh(key)
            if token is not None:
                return Ok(token)

            result = await fetch()
            if isinstance(result, Ok):
                self._tokens[key] = (result.value, self._clock() + result.value.expires_in)
                logger.debug("paypal_access_token_cached", key=key, expires_in=result.value.expires_in)
            return result

    async def invalidate(self, key: str) -> None:
        if self._tokens.pop(key, None) is not None:
            logger.info("paypal_access_token_invalidated", key=key)
