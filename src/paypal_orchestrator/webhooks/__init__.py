"""Inbound PayPal webhooks: replay ledger, routing and event handlers."""

from paypal_orchestrator.webhooks.handlers import PaymentEventHandlers, register_default_handlers
from paypal_orchestrator.webhooks.ledger import InMemoryWebhookLedger, WebhookLedger
from paypal_orchestrator.webhooks.router import WebhookEventRouter, WebhookHandler

__all__ = [
    "InMemoryWebhookLedger",
    "PaymentEventHandlers",
    "WebhookEventRouter",
    "WebhookHandler",
    "WebhookLedger",
    "register_default_handlers",
]
