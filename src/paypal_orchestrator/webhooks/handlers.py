"""
Handlers for PayPal webhook events.

Most events are only logged. Merchants that revoke consent are
disconnected. Refunds and reversals (chargebacks) that happen outside the
checkout flow are reported back to the merchant platform, correlated
through the order's ``custom_id``.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

import structlog

from paypal_orchestrator.clients.platform import PlatformClient
from paypal_orchestrator.infrastructure.config_store import TenantConfigStore
from paypal_orchestrator.models.result import Err
from paypal_orchestrator.models.webhook import WebhookContext, WebhookEvent
from paypal_orchestrator.payments.metadata import parse_custom_id
from paypal_orchestrator.webhooks.router import WebhookEventRouter

logger = structlog.get_logger(__name__)

REFUND_SUCCESS = "REFUND_SUCCESS"
CHARGE_BACK = "CHARGE_BACK"

LOGGED_EVENT_TYPES = (
    "PAYMENT.CAPTURE.COMPLETED",
    "PAYMENT.CAPTURE.DENIED",
    "PAYMENT.CAPTURE.PENDING",
    "PAYMENT.AUTHORIZATION.CREATED",
    "PAYMENT.AUTHORIZATION.VOIDED",
    "CHECKOUT.ORDER.APPROVED",
    "VAULT.PAYMENT-TOKEN.CREATED",
    "VAULT.PAYMENT-TOKEN.DELETED",
    "MERCHANT.ONBOARDING.COMPLETED",
)


class TransactionReportFailed(Exception):
    """The platform did not accept a transaction event report."""


def correlation_metadata(resource: dict[str, Any]) -> dict[str, Any] | None:
    """Find our ``custom_id`` on a capture, refund or order resource."""
    metadata = parse_custom_id(resource.get("custom_id"))
    if metadata is not None:
        return metadata
    units = resource.get("purchase_units") or []
    if units and isinstance(units[0], dict):
        return parse_custom_id(units[0].get("custom_id"))
    return None


def _amount_value(resource: dict[str, Any]) -> Decimal | None:
    amount = resource.get("amount") or {}
    try:
        value = Decimal(str(amount.get("value")))
    except (InvalidOperation, ValueError):
        return None
    return value if value.is_finite() and value > 0 else None


class PaymentEventHandlers:
    """Event handlers bound to the platform client and tenant configuration."""

    def __init__(self, platform_client: PlatformClient, config_store: TenantConfigStore):
        self.platform_client = platform_client
        self.config_store = config_store

    async def log_event(self, event: WebhookEvent, context: WebhookContext) -> None:
        resource = event.resource
        metadata = correlation_metadata(resource)
        logger.info(
            "webhook_event_received",
            event_id=event.id,
            event_type=event.event_type,
            resource_id=resource.get("id"),
            status=resource.get("status"),
            tenant_id=context.tenant_id,
            transaction_id=metadata.get("transaction_id") if metadata else None,
        )

    async def merchant_consent_revoked(self, event: WebhookEvent, context: WebhookContext) -> None:
        """Disconnect a merchant that revoked the platform's API permissions.

        Orders for its tenants would otherwise be sent with an auth
        assertion PayPal no longer honours.
        """
        resource = event.resource
        merchant_id = resource.get("merchant_id")
        logger.warning(
            "merchant_consent_revoked",
            event_id=event.id,
            merchant_id=merchant_id,
            partner_merchant_id=resource.get("partner_merchant_id"),
            tracking_id=resource.get("tracking_id"),
        )
        if not merchant_id:
            logger.warning("merchant_consent_revoked_without_merchant", event_id=event.id)
            return

        tenant_ids = await self.config_store.deactivate(merchant_id)
        if tenant_ids:
            logger.info("merchant_disconnected", merchant_id=merchant_id, tenant_ids=tenant_ids)
        else:
            logger.warning("merchant_not_found_for_revocation", merchant_id=merchant_id)

    async def capture_refunded(self, event: WebhookEvent, context: WebhookContext) -> None:
        await self._report(event, context, REFUND_SUCCESS, "PayPal refund completed")

    async def capture_reversed(self, event: WebhookEvent, context: WebhookContext) -> None:
        logger.warning(
            "payment_capture_reversed",
            event_id=event.id,
            capture_id=event.resource.get("id"),
            tenant_id=context.tenant_id,
        )
        await self._report(event, context, CHARGE_BACK, "PayPal capture reversed")

    async def _report(
        self,
        event: WebhookEvent,
        context: WebhookContext,
        event_type: str,
        message: str,
    ) -> None:
        """
        Report a processor-side transaction event to the platform.

        Events that cannot be correlated, carry no amount, or arrive for a
        tenant without an app token are logged and skipped.

        Raises:
            TransactionReportFailed: The platform rejected the report or was
                unreachable
        """
        resource = event.resource
        psp_reference = resource.get("id")
        metadata = correlation_metadata(resource)
        if metadata is None:
            logger.warning(
                "webhook_missing_correlation",
                event_id=event.id,
                event_type=event.event_type,
                resource_id=psp_reference,
            )
            return

        amount = _amount_value(resource)
        if amount is None or not psp_reference:
            logger.warning(
                "webhook_resource_incomplete",
                event_id=event.id,
                event_type=event.event_type,
                resource_id=psp_reference,
            )
            return

        tenant = await self.config_store.get(context.tenant_id)
        if tenant is None or not tenant.platform_app_token or not context.tenant_id:
            logger.warning(
                "transaction_report_skipped",
                reason="no_platform_credentials",
                event_id=event.id,
                tenant_id=context.tenant_id,
                transaction_id=metadata["transaction_id"],
            )
            return

        result = await self.platform_client.report_transaction_event(
            api_url=context.tenant_id,
            app_token=tenant.platform_app_token,
            transaction_id=metadata["transaction_id"],
            event_type=event_type,
            amount=amount,
            psp_reference=psp_reference,
            message=message,
        )
        if isinstance(result, Err):
            raise TransactionReportFailed(
                f"{event_type} report for {metadata['transaction_id']} failed: {result.error.code}"
            )


def register_default_handlers(router: WebhookEventRouter, handlers: PaymentEventHandlers) -> None:
    for event_type in LOGGED_EVENT_TYPES:
        router.register(event_type, handlers.log_event)
    router.register("PAYMENT.CAPTURE.REFUNDED", handlers.capture_refunded)
    router.register("PAYMENT.CAPTURE.REVERSED", handlers.capture_reversed)
    router.register("MERCHANT.PARTNER-CONSENT.REVOKED", handlers.merchant_consent_revoked)
