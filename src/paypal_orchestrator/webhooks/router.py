"""
Dispatch of verified webhook events to handlers.

Every outcome is acknowledged to PayPal: unknown event types would be
redelivered forever otherwise, and a handler bug is not fixed by a retry.
Retries are forced only for failures before routing (unparseable body,
verification outage), which the HTTP endpoint handles.
"""

from typing import Awaitable, Callable

import structlog

from paypal_orchestrator.models.webhook import RouteOutcome, WebhookContext, WebhookEvent

logger = structlog.get_logger(__name__)

WebhookHandler = Callable[[WebhookEvent, WebhookContext], Awaitable[None]]


class WebhookEventRouter:
    """Registry of one handler per event type."""

    def __init__(self) -> None:
        self._handlers: dict[str, WebhookHandler] = {}

    def register(self, event_type: str, handler: WebhookHandler) -> None:
        """
        Register the handler for an event type, replacing any previous one.

        Example:
            router.register("PAYMENT.CAPTURE.REFUNDED", handlers.capture_refunded)
        """
        self._handlers[event_type] = handler
        logger.debug("webhook_handler_registered", event_type=event_type)

    def registered_types(self) -> list[str]:
        return sorted(self._handlers)

    async def route(self, event: WebhookEvent, context: WebhookContext) -> RouteOutcome:
        handler = self._handlers.get(event.event_type)
        if handler is None:
            logger.info(
                "webhook_event_unhandled",
                event_id=event.id,
                event_type=event.event_type,
            )
            return RouteOutcome.UNHANDLED

        try:
            await handler(event, context)
        except Exception as e:
            logger.exception(
                "webhook_handler_failed",
                event_id=event.id,
                event_type=event.event_type,
                tenant_id=context.tenant_id,
                error=str(e),
            )
            return RouteOutcome.HANDLER_FAILED

        logger.info("webhook_event_handled", event_id=event.id, event_type=event.event_type)
        return RouteOutcome.HANDLED
