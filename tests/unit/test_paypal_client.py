"""Unit tests for the PayPal REST transport."""

import asyncio
import base64
import json
from urllib.parse import parse_qs

import httpx
import pytest

from paypal_orchestrator.models.errors import ErrorKind
from paypal_orchestrator.models.result import Err, Ok
from paypal_orchestrator.paypal.client import TOKEN_PATH

ORDER_PATH = "/v2/checkout/orders/ORDER-1"
ORDERS_PATH = "/v2/checkout/orders"


def decode_segment(segment: str) -> dict:
    return json.loads(base64.b64decode(segment))


class TestAccessTokens:
    """Test suite for OAuth token handling."""

    @pytest.mark.asyncio
    async def test_token_is_cached(self, paypal_client, tenant, fake_paypal):
        fake_paypal.add("GET", ORDER_PATH, (200, {"id": "ORDER-1"}))

        await paypal_client.request("GET", ORDER_PATH, tenant.credentials)
        await paypal_client.request("GET", ORDER_PATH, tenant.credentials)

        assert len(fake_paypal.calls("POST", TOKEN_PATH)) == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_token_fetch(self, paypal_client, tenant, fake_paypal):
        fake_paypal.add("GET", ORDER_PATH, (200, {"id": "ORDER-1"}))

        results = await asyncio.gather(
            *(paypal_client.request("GET", ORDER_PATH, tenant.credentials) for _ in range(5))
        )

        assert all(isinstance(result, Ok) for result in results)
        assert len(fake_paypal.calls("POST", TOKEN_PATH)) == 1
        assert len(fake_paypal.calls("GET", ORDER_PATH)) == 5

    @pytest.mark.asyncio
    async def test_token_request_uses_basic_auth(self, paypal_client, tenant, fake_paypal):
        await paypal_client.get_access_token(tenant.credentials)

        request = fake_paypal.calls("POST", TOKEN_PATH)[0]
        expected = base64.b64encode(b"client-id:client-secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert parse_qs(request.content.decode()) == {"grant_type": ["client_credentials"]}

    @pytest.mark.asyncio
    async def test_bad_credentials_are_authentication_errors(self, paypal_client, tenant, fake_paypal):
        fake_paypal.add(
            "POST",
            TOKEN_PATH,
            (401, {"error": "invalid_client", "error_description": "Client Authentication failed"}),
        )

        result = await paypal_client.request("GET", ORDER_PATH, tenant.credentials)

        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.AUTHENTICATION
        assert result.error.code == "INVALID_CLIENT"
        assert fake_paypal.calls("GET", ORDER_PATH) == []

    @pytest.mark.asyncio
    async def test_401_invalidates_cached_token(self, paypal_client, tenant, fake_paypal):
        fake_paypal.add(
            "GET",
            ORDER_PATH,
            (401, {"name": "AUTHENTICATION_FAILURE", "message": "expired"}),
            (200, {"id": "ORDER-1"}),
        )

        first = await paypal_client.request("GET", ORDER_PATH, tenant.credentials)
        second = await paypal_client.request("GET", ORDER_PATH, tenant.credentials)

        assert isinstance(first, Err)
        assert first.error.kind == ErrorKind.AUTHENTICATION
        # 401 is not retried within the call
        assert isinstance(second, Ok)
        assert len(fake_paypal.calls("GET", ORDER_PATH)) == 2
        assert len(fake_paypal.calls("POST", TOKEN_PATH)) == 2

    @pytest.mark.asyncio
    async def test_generate_id_token(self, paypal_client, tenant, fake_paypal):
        def token_endpoint(request: httpx.Request) -> httpx.Response:
            form = parse_qs(request.content.decode())
            assert form["response_type"] == ["id_token"]
            assert form["target_customer_id"] == ["cust-1"]
            return httpx.Response(200, json={"access_token": "A21", "id_token": "eyJ-id-token", "expires_in": 900})

        fake_paypal.add("POST", TOKEN_PATH, token_endpoint)

        result = await paypal_client.generate_id_token(tenant.credentials, target_customer_id="cust-1")

        assert result == Ok("eyJ-id-token")


class TestHeaders:
    """Test suite for partner and idempotency headers."""

    @pytest.mark.asyncio
    async def test_partner_headers(self, paypal_client, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, (201, {"id": "ORDER-1"}))

        await paypal_client.request(
            "POST", ORDERS_PATH, tenant.credentials, json={"intent": "CAPTURE"}, request_id="req-1"
        )

        headers = fake_paypal.calls("POST", ORDERS_PATH)[0].headers
        assert headers["Authorization"] == "Bearer A21AA-test-token"
        assert headers["PayPal-Partner-Attribution-Id"] == "PLATFORM_BN_TEST"
        assert headers["PayPal-Request-Id"] == "req-1"
        assert headers["Prefer"] == "return=representation"
        header, claims, signature = headers["PayPal-Auth-Assertion"].split(".")
        assert decode_segment(header) == {"alg": "none"}
        assert decode_segment(claims) == {"iss": "client-id", "payer_id": "MERCHANT123"}
        assert signature == ""

    @pytest.mark.asyncio
    async def test_platform_calls_skip_merchant_headers(self, paypal_client, tenant, fake_paypal):
        fake_paypal.add("POST", "/v1/notifications/verify-webhook-signature", (200, {}))

        await paypal_client.request(
            "POST",
            "/v1/notifications/verify-webhook-signature",
            tenant.credentials,
            content="{}",
            on_behalf_of_merchant=False,
        )

        headers = fake_paypal.calls("POST", "/v1/notifications/verify-webhook-signature")[0].headers
        assert "PayPal-Partner-Attribution-Id" not in headers
        assert "PayPal-Auth-Assertion" not in headers
        assert "PayPal-Request-Id" not in headers


class TestRetries:
    """Test suite for the single transient retry."""

    @pytest.mark.asyncio
    async def test_retries_once_with_request_id(self, paypal_client, tenant, fake_paypal, sleep):
        fake_paypal.add(
            "POST",
            ORDERS_PATH,
            (503, {"name": "SERVICE_UNAVAILABLE"}),
            (201, {"id": "ORDER-1"}),
        )

        result = await paypal_client.request(
            "POST", ORDERS_PATH, tenant.credentials, json={}, request_id="req-1"
        )

        assert result == Ok({"id": "ORDER-1"})
        calls = fake_paypal.calls("POST", ORDERS_PATH)
        assert len(calls) == 2
        assert {c.headers["PayPal-Request-Id"] for c in calls} == {"req-1"}
        sleep.assert_awaited_once_with(0.25)

    @pytest.mark.asyncio
    async def test_never_more_than_one_retry(self, paypal_client, tenant, fake_paypal):
        fake_paypal.add("GET", ORDER_PATH, (503, {"name": "SERVICE_UNAVAILABLE"}))

        result = await paypal_client.request("GET", ORDER_PATH, tenant.credentials)

        assert isinstance(result, Err)
        assert result.error.retryable
        assert len(fake_paypal.calls("GET", ORDER_PATH)) == 2

    @pytest.mark.asyncio
    async def test_no_retry_without_request_id(self, paypal_client, tenant, fake_paypal, sleep):
        fake_paypal.add("POST", ORDERS_PATH, (503, {"name": "SERVICE_UNAVAILABLE"}), (201, {"id": "ORDER-1"}))

        result = await paypal_client.request("POST", ORDERS_PATH, tenant.credentials, json={})

        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.TRANSIENT_NETWORK
        assert len(fake_paypal.calls("POST", ORDERS_PATH)) == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_retry_on_rejection(self, paypal_client, tenant, fake_paypal):
        fake_paypal.add("GET", ORDER_PATH, (400, {"name": "INVALID_REQUEST"}))

        result = await paypal_client.request("GET", ORDER_PATH, tenant.credentials)

        assert isinstance(result, Err)
        assert result.error.kind == ErrorKind.PROCESSOR_REJECTED
        assert len(fake_paypal.calls("GET", ORDER_PATH)) == 1

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self, paypal_client, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, httpx.ReadTimeout("timed out"))

        result = await paypal_client.request("POST", ORDERS_PATH, tenant.credentials, json={})

        assert isinstance(result, Err)
        assert result.error.code == "TIMEOUT"
        assert result.error.retryable

    @pytest.mark.asyncio
    async def test_connection_error_is_transient(self, paypal_client, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, httpx.ConnectError("reset"))

        result = await paypal_client.request("POST", ORDERS_PATH, tenant.credentials, json={})

        assert isinstance(result, Err)
        assert result.error.code == "NETWORK_ERROR"

    @pytest.mark.asyncio
    async def test_malformed_success_body(self, paypal_client, tenant, fake_paypal):
        fake_paypal.add("POST", ORDERS_PATH, lambda request: httpx.Response(200, content=b"<html>"))

        result = await paypal_client.request("POST", ORDERS_PATH, tenant.credentials, json={})

        assert isinstance(result, Err)
        assert result.error.code == "INVALID_RESPONSE"

    @pytest.mark.asyncio
    async def test_empty_success_body(self, paypal_client, tenant, fake_paypal):
        fake_paypal.add("DELETE", "/v3/vault/payment-tokens/tok-1", (204, None))

        result = await paypal_client.request("DELETE", "/v3/vault/payment-tokens/tok-1", tenant.credentials)

        assert result == Ok({})
