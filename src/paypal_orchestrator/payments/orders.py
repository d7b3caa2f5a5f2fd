"""
Order/authorization request orchestration.

Builds one PayPal order per checkout attempt from the normalized amount,
the checkout snapshot, the tenant configuration, and the payment source,
then interprets PayPal's answer as an ``OrderResult``.

Idempotency is the caller's: ``idempotency_key`` is passed through as
``PayPal-Request-Id`` unchanged and nothing is deduplicated locally.
"""

from typing import Any

import structlog

from paypal_orchestrator.models.errors import ErrorKind, PaymentError
from paypal_orchestrator.models.exceptions import ValidationError
from paypal_orchestrator.models.money import Money, percentage_of, to_processor_money
from paypal_orchestrator.models.order import (
    ActionRequired,
    Captured,
    CreateOrderCommand,
    Created,
    Failed,
    OrderIntent,
    OrderResult,
    VaultingSummary,
)
from paypal_orchestrator.models.payment_method import PaymentMethodKind
from paypal_orchestrator.models.result import Err, Ok, Result
from paypal_orchestrator.models.tenant import TenantConfig
from paypal_orchestrator.payments.checkout import (
    build_payer,
    build_shipping,
    items_and_breakdown,
    normalize_soft_descriptor,
    shipping_preference,
)
from paypal_orchestrator.payments.metadata import build_custom_id
from paypal_orchestrator.payments.payment_source import (
    PaymentSourceBuilder,
    PaymentSourceDescriptor,
)
from paypal_orchestrator.payments.vault_customers import VaultCustomerResolver
from paypal_orchestrator.paypal.orders_api import OrdersApi

logger = structlog.get_logger(__name__)

ACTION_REQUIRED_STATUSES = frozenset({"PAYER_ACTION_REQUIRED", "CREATED"})
DECLINED_PAYMENT_STATUSES = frozenset({"DECLINED", "FAILED"})

CALLBACK_PATH = "/api/webhooks/paypal/order-update-callback"
CALLBACK_EVENTS = [
    "SHIPPING_CHANGE",
    "SHIPPING_OPTIONS_CHANGE",
    "BILLING_ADDRESS_CHANGE",
    "PHONE_NUMBER_CHANGE",
]


def _first_link(body: dict[str, Any], *rels: str) -> str | None:
    for rel in rels:
        for link in body.get("links") or []:
            if link.get("rel") == rel:
                return link.get("href")
    return None


def _first_purchase_unit(body: dict[str, Any]) -> dict[str, Any]:
    units = body.get("purchase_units") or []
    return units[0] if units else {}


def _first_payment(body: dict[str, Any], collection: str) -> dict[str, Any]:
    payments = (_first_purchase_unit(body).get("payments") or {}).get(collection) or []
    return payments[0] if payments else {}


def _money(value: dict[str, Any] | None) -> Money | None:
    if not value or "value" not in value or "currency_code" not in value:
        return None
    return to_processor_money(value["value"], value["currency_code"])


def _vault_id(body: dict[str, Any]) -> str | None:
    """Vault id PayPal returns after save-during-purchase succeeded."""
    for branch in (body.get("payment_source") or {}).values():
        vault = ((branch or {}).get("attributes") or {}).get("vault") or {}
        if vault.get("id"):
            return vault["id"]
    return None


class OrderOrchestrator:
    """Creates, completes and amends PayPal orders for platform transactions."""

    def __init__(
        self,
        orders_api: OrdersApi,
        source_builder: PaymentSourceBuilder,
        vault_customers: VaultCustomerResolver,
        partner_merchant_id: str | None = None,
        brand_name: str | None = None,
        callback_base_url: str | None = None,
    ) -> None:
        self.orders_api = orders_api
        self.source_builder = source_builder
        self.vault_customers = vault_customers
        self.partner_merchant_id = partner_merchant_id
        self.brand_name = brand_name
        self.callback_base_url = callback_base_url.rstrip("/") if callback_base_url else None

    def experience_context(self, command: CreateOrderCommand) -> dict[str, Any]:
        """PayPal wallet experience context for this checkout."""
        context: dict[str, Any] = {
            "user_action": "PAY_NOW",
            "shipping_preference": shipping_preference(command.checkout),
            "app_switch_preference": True,
        }
        if self.brand_name:
            context["brand_name"] = self.brand_name
        if self.callback_base_url:
            context["callback_configuration"] = {
                "callback_url": f"{self.callback_base_url}{CALLBACK_PATH}",
                "callback_events": list(CALLBACK_EVENTS),
            }
        return context

    def platform_fee(self, tenant: TenantConfig, amount: Money) -> Money | None:
        """Fee owed to the partner, when merchant, partner and percentage are all set."""
        percent = tenant.partner_fee_percent
        if not (percent and percent > 0 and tenant.merchant_id and self.partner_merchant_id):
            return None
        return percentage_of(amount, percent)

    async def resolve_payment_source(
        self, tenant: TenantConfig, command: CreateOrderCommand
    ) -> PaymentSourceDescriptor:
        """
        Resolve vaulting inputs into a payment source.

        Raises:
            ValidationError: Save-during-purchase without a signed-in buyer,
                or a merchant-initiated charge without a vault id
        """
        vaulting = command.vaulting
        kind = vaulting.payment_method_type
        base = {PaymentMethodKind.PAYPAL.value: {"experience_context": self.experience_context(command)}}

        if vaulting.merchant_initiated and not vaulting.vault_id:
            raise ValidationError(
                "Merchant-initiated charges require a saved payment method",
                code="MIT_REQUIRES_VAULT_ID",
            )

        if vaulting.vault_id:
            return self.source_builder.build(
                kind,
                return_buyer_token_id=vaulting.vault_id,
                is_merchant_initiated=vaulting.merchant_initiated,
                base=base,
            )

        customer_id = None
        if vaulting.save_payment_method:
            if not vaulting.platform_user_id:
                raise ValidationError(
                    "Saving a payment method requires a signed-in buyer",
                    code="VAULTING_REQUIRES_BUYER",
                )
            mapping = await self.vault_customers.get_or_create(
                tenant.tenant_id, vaulting.platform_user_id
            )
            customer_id = mapping.processor_customer_id

        return self.source_builder.build(
            kind,
            vault_intent=vaulting.save_payment_method,
            vault_customer_id=customer_id,
            base=base,
        )

    def build_order_request(
        self,
        tenant: TenantConfig,
        command: CreateOrderCommand,
        amount: Money,
        payment_source: PaymentSourceDescriptor,
    ) -> dict[str, Any]:
        """Assemble the ``POST /v2/checkout/orders`` body."""
        checkout = command.checkout
        items, breakdown = items_and_breakdown(amount, checkout)

        purchase_unit: dict[str, Any] = {
            "amount": {**amount.to_dict(), "breakdown": breakdown} if breakdown else amount.to_dict(),
            "custom_id": build_custom_id(
                command.transaction_id,
                source_id=checkout.source_id if checkout else None,
                source_type=checkout.source_type if checkout else None,
                channel_id=checkout.channel_id if checkout else None,
            ),
        }
        if items:
            purchase_unit["items"] = items

        soft_descriptor = normalize_soft_descriptor(tenant.soft_descriptor)
        if soft_descriptor:
            purchase_unit["soft_descriptor"] = soft_descriptor

        shipping = build_shipping(checkout)
        if shipping:
            purchase_unit["shipping"] = shipping

        if tenant.merchant_id:
            purchase_unit["payee"] = {"merchant_id": tenant.merchant_id}

        fee = self.platform_fee(tenant, amount)
        if fee is not None:
            purchase_unit["payment_instruction"] = {
                "disbursement_mode": "INSTANT",
                "platform_fees": [{"amount": fee.to_dict()}],
            }

        body: dict[str, Any] = {
            "intent": OrderIntent.from_action(command.action).value,
            "purchase_units": [purchase_unit],
        }

        payer = build_payer(checkout)
        if payer:
            body["payer"] = payer

        source = payment_source.to_request()
        if source:
            body["payment_source"] = source

        return body

    async def create_order(self, tenant: TenantConfig, command: CreateOrderCommand) -> OrderResult:
        """
        Create a PayPal order for a platform transaction.

        Returns:
            ActionRequired when the buyer still has to approve, Captured when
            PayPal completed the order right away (vaulted methods), or
            Failed with a translated error. Never raises for processor or
            validation failures.
        """
        log = logger.bind(transaction_id=command.transaction_id, tenant_id=tenant.tenant_id)

        try:
            amount = to_processor_money(command.amount, command.currency)
            payment_source = await self.resolve_payment_source(tenant, command)
            body = self.build_order_request(tenant, command, amount, payment_source)
        except ValidationError as e:
            log.warning("paypal_order_rejected_locally", code=e.code, reason=str(e))
            return Failed(PaymentError.validation(e.code, str(e)))

        log.info(
            "paypal_order_creating",
            intent=body["intent"],
            amount=amount.value,
            currency=amount.currency_code,
            payment_method=payment_source.kind.value,
            vaulting_mode=payment_source.vaulting_mode.value,
            has_items="items" in body["purchase_units"][0],
            has_platform_fee="payment_instruction" in body["purchase_units"][0],
            has_idempotency_key=command.idempotency_key is not None,
        )

        result = await self.orders_api.create_order(
            tenant.credentials, body, request_id=command.idempotency_key
        )
        if isinstance(result, Err):
            log.warning(
                "paypal_order_create_failed",
                code=result.error.code,
                kind=result.error.kind.value,
                debug_id=result.error.debug_id,
            )
            return Failed(result.error)

        outcome = self.interpret_created(result.value, amount, payment_source)
        log.info(
            "paypal_order_created",
            order_id=result.value.get("id"),
            status=result.value.get("status"),
            outcome=type(outcome).__name__,
        )
        return outcome

    @staticmethod
    def interpret_created(
        body: dict[str, Any],
        amount: Money,
        payment_source: PaymentSourceDescriptor,
    ) -> OrderResult:
        order_id = body.get("id")
        status = body.get("status") or ""
        if not order_id:
            return Failed(
                PaymentError(
                    kind=ErrorKind.PROCESSOR_REJECTED,
                    code="MISSING_ORDER_ID",
                    message="PayPal did not return an order id",
                )
            )

        if status in ACTION_REQUIRED_STATUSES:
            return ActionRequired(
                order_id=order_id,
                status=status,
                approval_url=_first_link(body, "payer-action", "approve"),
                vaulting=VaultingSummary(
                    mode=payment_source.vaulting_mode,
                    customer_id=payment_source.customer_id,
                ),
            )

        capture = _first_payment(body, "captures") or _first_payment(body, "authorizations")
        return Captured(
            order_id=order_id,
            status=status,
            amount=_money(capture.get("amount")) or amount,
            psp_reference=capture.get("id"),
            vault_id=_vault_id(body),
        )

    async def capture_order(
        self, tenant: TenantConfig, order_id: str, idempotency_key: str | None = None
    ) -> OrderResult:
        """Capture an approved CAPTURE-intent order."""
        result = await self.orders_api.capture_order(
            tenant.credentials, order_id, request_id=idempotency_key
        )
        return self._interpret_completion(order_id, result, "captures", "CAPTURE_DECLINED")

    async def authorize_order(
        self, tenant: TenantConfig, order_id: str, idempotency_key: str | None = None
    ) -> OrderResult:
        """Authorize an approved AUTHORIZE-intent order."""
        result = await self.orders_api.authorize_order(
            tenant.credentials, order_id, request_id=idempotency_key
        )
        return self._interpret_completion(
            order_id, result, "authorizations", "AUTHORIZATION_DECLINED"
        )

    def _interpret_completion(
        self,
        order_id: str,
        result: Result[dict[str, Any]],
        collection: str,
        declined_code: str,
    ) -> OrderResult:
        if isinstance(result, Err):
            logger.warning(
                "paypal_order_completion_failed",
                order_id=order_id,
                collection=collection,
                code=result.error.code,
                debug_id=result.error.debug_id,
            )
            return Failed(result.error, order_id=order_id)

        body = result.value
        payment = _first_payment(body, collection)
        if payment.get("status") in DECLINED_PAYMENT_STATUSES:
            logger.info(
                "paypal_order_payment_declined",
                order_id=order_id,
                collection=collection,
                payment_status=payment.get("status"),
            )
            return Failed(
                PaymentError(
                    kind=ErrorKind.PROCESSOR_REJECTED,
                    code=declined_code,
                    message="The payment was declined",
                ),
                order_id=order_id,
            )

        logger.info(
            "paypal_order_completed",
            order_id=order_id,
            collection=collection,
            status=body.get("status"),
        )
        return Captured(
            order_id=body.get("id") or order_id,
            status=body.get("status") or "",
            amount=_money(payment.get("amount")),
            psp_reference=payment.get("id"),
            vault_id=_vault_id(body),
        )

    async def get_order(self, tenant: TenantConfig, order_id: str) -> Result[dict[str, Any]]:
        """Order id, status, intent and amount as PayPal currently sees them."""
        result = await self.orders_api.get_order(tenant.credentials, order_id)
        if isinstance(result, Err):
            return result

        body = result.value
        unit = _first_purchase_unit(body)
        return Ok(
            {
                "id": body.get("id"),
                "status": body.get("status"),
                "intent": body.get("intent"),
                "amount": unit.get("amount"),
                "custom_id": unit.get("custom_id"),
            }
        )

    async def update_order(
        self,
        tenant: TenantConfig,
        order_id: str,
        operations: list[dict[str, Any]],
    ) -> OrderResult:
        """Amend an order that is still waiting on the buyer (JSON Patch)."""
        if not operations:
            return Failed(
                PaymentError.validation("EMPTY_PATCH", "At least one patch operation is required"),
                order_id=order_id,
            )

        result = await self.orders_api.patch_order(tenant.credentials, order_id, operations)
        if isinstance(result, Err):
            logger.warning(
                "paypal_order_update_failed",
                order_id=order_id,
                code=result.error.code,
                debug_id=result.error.debug_id,
            )
            return Failed(result.error, order_id=order_id)

        logger.info("paypal_order_updated", order_id=order_id, operations=len(operations))
        return Created(order_id=order_id, status="UPDATED")
