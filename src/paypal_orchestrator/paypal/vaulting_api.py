"""PayPal Vault v3 endpoints."""

from typing import Any
from urllib.parse import quote

from paypal_orchestrator.models.result import Err, Ok, Result
from paypal_orchestrator.models.tenant import PayPalCredentials
from paypal_orchestrator.paypal.client import PayPalClient

SETUP_TOKENS_PATH = "/v3/vault/setup-tokens"
PAYMENT_TOKENS_PATH = "/v3/vault/payment-tokens"


class VaultingApi:
    """Typed wrapper over the Vault v3 API."""

    def __init__(self, client: PayPalClient) -> None:
        self.client = client

    async def create_setup_token(
        self,
        credentials: PayPalCredentials,
        body: dict[str, Any],
        request_id: str | None = None,
    ) -> Result[dict[str, Any]]:
        return await self.client.request(
            "POST", SETUP_TOKENS_PATH, credentials, json=body, request_id=request_id
        )

    async def get_setup_token(
        self, credentials: PayPalCredentials, setup_token_id: str
    ) -> Result[dict[str, Any]]:
        return await self.client.request(
            "GET", f"{SETUP_TOKENS_PATH}/{quote(setup_token_id, safe='')}", credentials
        )

    async def create_payment_token(
        self,
        credentials: PayPalCredentials,
        setup_token_id: str,
        request_id: str | None = None,
    ) -> Result[dict[str, Any]]:
        body = {"payment_source": {"token": {"id": setup_token_id, "type": "SETUP_TOKEN"}}}
        return await self.client.request(
            "POST", PAYMENT_TOKENS_PATH, credentials, json=body, request_id=request_id
        )

    async def list_payment_tokens(
        self, credentials: PayPalCredentials, customer_id: str
    ) -> Result[list[dict[str, Any]]]:
        result = await self.client.request(
            "GET", PAYMENT_TOKENS_PATH, credentials, params={"customer_id": customer_id}
        )
        if isinstance(result, Err):
            return result
        return Ok(list(result.value.get("payment_tokens") or []))

    async def delete_payment_token(
        self, credentials: PayPalCredentials, token_id: str
    ) -> Result[None]:
        result = await self.client.request(
            "DELETE", f"{PAYMENT_TOKENS_PATH}/{quote(token_id, safe='')}", credentials
        )
        if isinstance(result, Err):
            return result
        return Ok(None)
