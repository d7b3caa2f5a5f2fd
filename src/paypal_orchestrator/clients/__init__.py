"""Clients for services other than PayPal."""

from paypal_orchestrator.clients.platform import PlatformClient, PlatformUser

__all__ = ["PlatformClient", "PlatformUser"]
