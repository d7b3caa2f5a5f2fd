"""PayPal REST integration."""

from paypal_orchestrator.paypal.client import PayPalClient
from paypal_orchestrator.paypal.orders_api import OrdersApi
from paypal_orchestrator.paypal.token_cache import (
    AccessToken,
    AccessTokenCache,
    InMemoryAccessTokenCache,
)
from paypal_orchestrator.paypal.vaulting_api import VaultingApi
from paypal_orchestrator.paypal.webhook_verification import WebhookSignatureVerifier

__all__ = [
    "AccessToken",
    "AccessTokenCache",
    "InMemoryAccessTokenCache",
    "OrdersApi",
    "PayPalClient",
    "VaultingApi",
    "WebhookSignatureVerifier",
]
