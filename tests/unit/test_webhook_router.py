"""Unit tests for webhook routing and the replay ledger."""

from unittest.mock import AsyncMock

import pytest

from paypal_orchestrator.models.webhook import RouteOutcome, WebhookContext, WebhookEvent
from paypal_orchestrator.webhooks.ledger import InMemoryWebhookLedger
from paypal_orchestrator.webhooks.router import WebhookEventRouter

EVENT = WebhookEvent(id="WH-1", event_type="PAYMENT.CAPTURE.COMPLETED", resource={"id": "CAP-1"})
CONTEXT = WebhookContext(tenant_id="https://shop.example.com/graphql/", transmission_id="tx-1")


class TestWebhookEventRouter:
    """Test suite for event dispatch."""

    @pytest.mark.asyncio
    async def test_dispatches_to_registered_handler(self):
        handler = AsyncMock()
        router = WebhookEventRouter()
        router.register("PAYMENT.CAPTURE.COMPLETED", handler)

        outcome = await router.route(EVENT, CONTEXT)

        assert outcome is RouteOutcome.HANDLED
        handler.assert_awaited_once_with(EVENT, CONTEXT)

    @pytest.mark.asyncio
    async def test_unknown_type_is_acknowledged(self):
        outcome = await WebhookEventRouter().route(EVENT, CONTEXT)

        assert outcome is RouteOutcome.UNHANDLED

    @pytest.mark.asyncio
    async def test_handler_failure_is_contained(self):
        router = WebhookEventRouter()
        router.register("PAYMENT.CAPTURE.COMPLETED", AsyncMock(side_effect=RuntimeError("boom")))

        outcome = await router.route(EVENT, CONTEXT)

        assert outcome is RouteOutcome.HANDLER_FAILED

    def test_register_replaces(self):
        first, second = AsyncMock(), AsyncMock()
        router = WebhookEventRouter()
        router.register("B.EVENT", first)
        router.register("A.EVENT", first)
        router.register("B.EVENT", second)

        assert router.registered_types() == ["A.EVENT", "B.EVENT"]


class TestInMemoryWebhookLedger:
    """Test suite for transmission-id replay protection."""

    @pytest.fixture
    def clock(self):
        class Clock:
            now = 1_000_000.0

            def __call__(self):
                return self.now

        return Clock()

    @pytest.mark.asyncio
    async def test_records_and_detects(self, clock):
        ledger = InMemoryWebhookLedger(ttl_seconds=60, clock=clock)

        assert not await ledger.seen("tx-1")
        await ledger.record("tx-1")
        assert await ledger.seen("tx-1")
        assert not await ledger.seen("tx-2")

    @pytest.mark.asyncio
    async def test_entries_expire(self, clock):
        ledger = InMemoryWebhookLedger(ttl_seconds=60, clock=clock)
        await ledger.record("tx-1")

        clock.now += 60

        assert not await ledger.seen("tx-1")

    @pytest.mark.asyncio
    async def test_sweep(self, clock):
        ledger = InMemoryWebhookLedger(ttl_seconds=60, clock=clock)
        await ledger.record("tx-1")
        clock.now += 30
        await ledger.record("tx-2")
        clock.now += 31

        assert ledger.sweep() == 1
        assert await ledger.seen("tx-2")
