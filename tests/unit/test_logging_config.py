"""Unit tests for log processors."""

import pytest
import structlog

from paypal_orchestrator.logging_config import REDACTED, redact_sensitive_fields


class TestRedaction:
    def test_masks_credentials(self):
        event = {
            "event": "paypal_request",
            "client_secret": "s3cr3t",
            "access_token": "A21AA",
            "order_id": "ORDER-1",
        }

        result = redact_sensitive_fields(None, "info", event)

        assert result["client_secret"] == REDACTED
        assert result["access_token"] == REDACTED
        assert result["order_id"] == "ORDER-1"

    def test_empty_values_are_left_alone(self):
        result = redact_sensitive_fields(None, "info", {"event": "x", "token": None})

        assert result["token"] is None


class TestRequestCorrelationId:
    """The API middleware binds one correlation id per request for every log line."""

    @pytest.fixture
    def context_client(self, client):
        async def current_context() -> dict:
            return structlog.contextvars.get_contextvars()

        client.app.add_api_route("/_context", current_context)
        return client

    def test_taken_from_x_request_id(self, context_client):
        response = context_client.get("/_context", headers={"X-Request-ID": "req-123"})

        assert response.json()["correlation_id"] == "req-123"

    def test_generated_per_request_when_absent(self, context_client):
        first = context_client.get("/_context").json()["correlation_id"]
        second = context_client.get("/_context").json()["correlation_id"]

        assert first
        assert second
        assert first != second
