"""PayPal Payment Orchestrator: orders, vaulting, and verified webhooks."""

__version__ = "0.1.0"
