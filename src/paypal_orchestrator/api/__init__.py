"""HTTP surface: webhooks, order and vault routes."""
