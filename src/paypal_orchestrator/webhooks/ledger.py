"""Replay ledger of processed webhook transmissions.

PayPal delivers at least once. Remembering transmission ids for a TTL lets
the endpoint acknowledge a redelivery without routing it a second time.
"""

import time
from typing import Callable, Protocol

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60


class WebhookLedger(Protocol):
    """Transmission-id store; a shared backend can replace the in-memory one."""

    async def seen(self, transmission_id: str) -> bool:
        ...

    async def record(self, transmission_id: str) -> None:
        ...


class InMemoryWebhookLedger:
    """Process-local ledger with per-entry expiry."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, float] = {}

    async def seen(self, transmission_id: str) -> bool:
        expires_at = self._entries.get(transmission_id)
        if expires_at is None:
            return False
        if self._clock() >= expires_at:
            del self._entries[transmission_id]
            return False
        return True

    async def record(self, transmission_id: str) -> None:
        self._entries[transmission_id] = self._clock() + self.ttl_seconds

    def sweep(self) -> int:
        """Drop expired entries. Returns the number removed."""
        now = self._clock()
        expired = [key for key, expires_at in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("webhook_ledger_swept", evicted=len(expired))
        return len(expired)
