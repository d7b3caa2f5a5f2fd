"""PayPal Orders v2 endpoints."""

from typing import Any
from urllib.parse import quote

import structlog

from paypal_orchestrator.models.errors import ErrorKind, PaymentError
from paypal_orchestrator.models.result import Err, Ok, Result
from paypal_orchestrator.models.tenant import PayPalCredentials
from paypal_orchestrator.paypal.client import PayPalClient

logger = structlog.get_logger(__name__)

ORDERS_PATH = "/v2/checkout/orders"


def _order_path(order_id: str, suffix: str = "") -> str:
    return f"{ORDERS_PATH}/{quote(order_id, safe='')}{suffix}"


class OrdersApi:
    """Typed wrapper over the Orders v2 API."""

    def __init__(self, client: PayPalClient) -> None:
        self.client = client

    async def create_order(
        self,
        credentials: PayPalCredentials,
        body: dict[str, Any],
        request_id: str | None = None,
    ) -> Result[dict[str, Any]]:
        return await self.client.request(
            "POST", ORDERS_PATH, credentials, json=body, request_id=request_id
        )

    async def capture_order(
        self,
        credentials: PayPalCredentials,
        order_id: str,
        request_id: str | None = None,
    ) -> Result[dict[str, Any]]:
        return await self.client.request(
            "POST", _order_path(order_id, "/capture"), credentials, json={}, request_id=request_id
        )

    async def authorize_order(
        self,
        credentials: PayPalCredentials,
        order_id: str,
        request_id: str | None = None,
    ) -> Result[dict[str, Any]]:
        return await self.client.request(
            "POST", _order_path(order_id, "/authorize"), credentials, json={}, request_id=request_id
        )

    async def get_order(
        self, credentials: PayPalCredentials, order_id: str
    ) -> Result[dict[str, Any]]:
        return await self.client.request("GET", _order_path(order_id), credentials)

    async def patch_order(
        self,
        credentials: PayPalCredentials,
        order_id: str,
        operations: list[dict[str, Any]],
    ) -> Result[None]:
        """Apply JSON-Patch operations. PayPal answers 204 with no body."""
        result = await self.client.request(
            "PATCH", _order_path(order_id), credentials, json=operations
        )
        if isinstance(result, Err):
            return result
        return Ok(None)

    async def generate_client_token(
        self,
        credentials: PayPalCredentials,
        customer_id: str | None = None,
    ) -> Result[str]:
        """Client token for the JS SDK (hosted card fields)."""
        body = {"customer_id": customer_id} if customer_id else {}
        result = await self.client.request(
            "POST", "/v1/identity/generate-token", credentials, json=body
        )
        if isinstance(result, Err):
            return result

        client_token = result.value.get("client_token")
        if not client_token:
            logger.warning("paypal_client_token_missing")
            return Err(
                PaymentError(
                    kind=ErrorKind.PROCESSOR_REJECTED,
                    code="MISSING_CLIENT_TOKEN",
                    message="PayPal did not return a client token",
                )
            )
        return Ok(client_token)
