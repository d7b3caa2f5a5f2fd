"""PayPal-facing endpoints: event webhooks and order-update callbacks.

Status codes are chosen for PayPal's redelivery behaviour: 2xx stops
redelivery, anything else is retried. Failures on our side (verifier
outage, missing configuration) answer 500 so the event comes back; forged
or malformed deliveries answer 4xx.
"""

import json

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from paypal_orchestrator.api.dependencies import Container, WebhookLimit
from paypal_orchestrator.infrastructure.rate_limiter import RateLimitDecision
from paypal_orchestrator.models.exceptions import ValidationError
from paypal_orchestrator.models.webhook import (
    Rejected,
    WebhookContext,
    WebhookEvent,
    WebhookHeaders,
)
from paypal_orchestrator.payments.callbacks import CallbackRejected, build_callback_response
from paypal_orchestrator.payments.orders import CALLBACK_PATH

logger = structlog.get_logger()

router = APIRouter()


def _reply(status_code: int, content: dict, limit: RateLimitDecision) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=limit.headers())


@router.post("/api/webhooks/paypal")
async def receive_paypal_webhook(
    request: Request,
    limit: WebhookLimit,
    container: Container,
    tenant_id: str | None = None,
) -> JSONResponse:
    """Receive, verify and route one PayPal webhook delivery.

    Args:
        request: FastAPI request object (for the raw body and headers)
        limit: Webhook rate-limit decision
        container: Service container
        tenant_id: Merchant platform API URL the webhook was registered for;
            platform-level webhooks omit it

    Responses:
        200 OK: Event accepted (routed, unhandled, or a duplicate delivery)
        400 Bad Request: Body is not a PayPal event
        401 Unauthorized: Signature headers missing or signature rejected
        429 Too Many Requests: Rate limit exceeded
        500 Internal Server Error: Verification unavailable or not configured
    """
    try:
        body = await request.body()
        try:
            raw_body = body.decode("utf-8")
            payload = json.loads(raw_body)
        except ValueError:
            logger.warning("webhook_invalid_json", tenant_id=tenant_id)
            return _reply(status.HTTP_400_BAD_REQUEST, {"error": "Invalid JSON"}, limit)

        headers = WebhookHeaders.extract(request.headers)
        if headers is None:
            logger.warning(
                "webhook_signature_rejected",
                reason="MISSING_HEADERS",
                missing=WebhookHeaders.missing(request.headers),
                tenant_id=tenant_id,
            )
            return _reply(status.HTTP_401_UNAUTHORIZED, {"error": "Missing signature headers"}, limit)

        tenant = await container.config_store.get(tenant_id)
        if tenant is None or not tenant.webhook_id:
            logger.error("webhook_not_configured", tenant_id=tenant_id)
            return _reply(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                {"error": "Webhook verification is not configured"},
                limit,
            )

        verification = await container.verifier.verify(
            request.headers, raw_body, tenant.webhook_id, tenant.credentials
        )
        if isinstance(verification, Rejected):
            if verification.reason.is_outage:
                return _reply(
                    status.HTTP_500_INTERNAL_SERVER_ERROR,
                    {"error": "Webhook verification unavailable"},
                    limit,
                )
            return _reply(status.HTTP_401_UNAUTHORIZED, {"error": "Invalid signature"}, limit)

        if not isinstance(payload, dict) or not payload.get("event_type") or not isinstance(
            payload.get("resource"), dict
        ):
            logger.warning("webhook_invalid_event", tenant_id=tenant_id)
            return _reply(status.HTTP_400_BAD_REQUEST, {"error": "Invalid webhook event"}, limit)

        transmission_id = verification.transmission_id
        if await container.ledger.seen(transmission_id):
            logger.info(
                "webhook_duplicate_delivery",
                transmission_id=transmission_id,
                event_type=payload["event_type"],
            )
            return _reply(status.HTTP_200_OK, {"received": True, "duplicate": True}, limit)

        event = WebhookEvent.from_payload(payload)
        context = WebhookContext(tenant_id=tenant_id, transmission_id=transmission_id)
        outcome = await container.router.route(event, context)
        await container.ledger.record(transmission_id)

        logger.info(
            "webhook_processed",
            event_id=event.id,
            event_type=event.event_type,
            outcome=outcome.value,
            tenant_id=tenant_id,
        )
        return _reply(status.HTTP_200_OK, {"received": True}, limit)

    except Exception as e:
        logger.exception("webhook_processing_failed", tenant_id=tenant_id, error=type(e).__name__)
        return _reply(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            {"error": "Internal server error"},
            limit,
        )


@router.post(CALLBACK_PATH)
async def receive_order_update_callback(request: Request, limit: WebhookLimit) -> JSONResponse:
    """Answer PayPal's server-side shipping callback for an order.

    Responses:
        200 OK: Purchase units with the selected option and recomputed amount
        400 Bad Request: Body is not a PayPal callback
        422 Unprocessable Entity: The buyer's change is refused (PayPal issue code)
        429 Too Many Requests: Rate limit exceeded
    """
    try:
        payload = json.loads(await request.body())
    except ValueError:
        logger.warning("order_callback_invalid_json")
        return _reply(status.HTTP_400_BAD_REQUEST, {"error": "Invalid JSON"}, limit)
    if not isinstance(payload, dict):
        return _reply(status.HTTP_400_BAD_REQUEST, {"error": "Invalid callback"}, limit)

    try:
        answer = build_callback_response(payload)
    except CallbackRejected as e:
        logger.info("order_callback_rejected", order_id=payload.get("id"), issue=e.issue)
        return _reply(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            {"name": "UNPROCESSABLE_ENTITY", "details": [{"issue": e.issue}]},
            limit,
        )
    except ValidationError as e:
        logger.warning("order_callback_invalid", order_id=payload.get("id"), code=e.code)
        return _reply(status.HTTP_400_BAD_REQUEST, {"error": "Invalid callback"}, limit)

    logger.info(
        "order_callback_answered",
        order_id=answer["id"],
        shipping_option=(payload.get("shipping_option") or {}).get("id"),
    )
    return _reply(status.HTTP_200_OK, answer, limit)
