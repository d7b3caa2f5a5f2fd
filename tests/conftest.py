"""Pytest configuration and shared fixtures for all tests.

This module provides shared test fixtures including:
- A scripted fake of the PayPal REST API served over httpx.MockTransport
- Tenant configuration and a PayPal client wired to the fake
- A service container for route tests
"""

import os
from collections import defaultdict
from typing import Any, Callable
from unittest.mock import AsyncMock

import httpx
import pytest

# Keep the module-level Settings() independent of the developer's environment
os.environ.setdefault("LOG_JSON", "false")

from paypal_orchestrator.config import PayPalSettings, Settings
from paypal_orchestrator.context import ServiceContainer
from paypal_orchestrator.infrastructure.config_store import InMemoryTenantConfigStore
from paypal_orchestrator.models.tenant import PayPalEnvironment, TenantConfig
from paypal_orchestrator.paypal.client import PayPalClient
from paypal_orchestrator.paypal.token_cache import InMemoryAccessTokenCache

TENANT_ID = "https://shop.example.com/graphql/"

ScriptedResponse = tuple[int, Any] | Exception | Callable[[httpx.Request], httpx.Response]


class FakePayPal:
    """
    Scripted PayPal API.

    Responses are queued per (method, path); the last queued response
    repeats. Unscripted paths answer 404. The OAuth token endpoint is
    scripted by default.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[ScriptedResponse]] = {}
        self.requests: list[httpx.Request] = []
        self.add(
            "POST",
            "/v1/oauth2/token",
            (200, {"access_token": "A21AA-test-token", "token_type": "Bearer", "expires_in": 32400}),
        )

    def add(self, method: str, path: str, *responses: ScriptedResponse) -> None:
        self.routes[(method.upper(), path)] = list(responses)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def counts(self) -> dict[tuple[str, str], int]:
        counts: dict[tuple[str, str], int] = defaultdict(int)
        for r in self.requests:
            counts[(r.method, r.url.path)] += 1
        return dict(counts)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"name": "RESOURCE_NOT_FOUND", "message": "Not scripted"})

        scripted = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(scripted, Exception):
            raise scripted
        if callable(scripted):
            return scripted(request)
        status, body = scripted
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body, headers={"paypal-debug-id": "debug-123"})


@pytest.fixture
def fake_paypal() -> FakePayPal:
    return FakePayPal()


@pytest.fixture
def http_client(fake_paypal: FakePayPal) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_paypal.handler))


@pytest.fixture
def sleep() -> AsyncMock:
    """Stands in for asyncio.sleep so retries do not wait."""
    return AsyncMock()


@pytest.fixture
def paypal_client(http_client: httpx.AsyncClient, sleep: AsyncMock) -> PayPalClient:
    return PayPalClient(
        http_client,
        InMemoryAccessTokenCache(),
        bn_code="PLATFORM_BN_TEST",
        timeout_seconds=5.0,
        sleep=sleep,
    )


@pytest.fixture
def tenant() -> TenantConfig:
    return TenantConfig(
        tenant_id=TENANT_ID,
        client_id="client-id",
        client_secret="client-secret",
        environment=PayPalEnvironment.SANDBOX,
        merchant_id="MERCHANT123",
        webhook_id="WH-123",
        soft_descriptor="SHOP*EXAMPLE",
        platform_app_token="platform-app-token",
        service_auth_secret="platform-shared-secret",
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url=None,
        log_json=False,
        paypal=PayPalSettings(
            partner_merchant_id="PARTNER123",
            bn_code="PLATFORM_BN_TEST",
            brand_name="Example Shop",
        ),
    )


@pytest.fixture
def container(test_settings: Settings, http_client: httpx.AsyncClient, tenant: TenantConfig) -> ServiceContainer:
    """Container wired to the fake PayPal API and an in-memory tenant store."""
    built = ServiceContainer.build(
        test_settings,
        http_client=http_client,
        config_store=InMemoryTenantConfigStore([tenant]),
    )
    # Retries must not wait in tests
    built.paypal._sleep = AsyncMock()
    return built


@pytest.fixture
def client(container: ServiceContainer):
    """Test client over an app with the fake-wired container injected (no lifespan)."""
    from fastapi.testclient import TestClient

    from paypal_orchestrator.api.main import create_app

    return TestClient(create_app(container))
