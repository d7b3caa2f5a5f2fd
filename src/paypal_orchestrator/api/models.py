"""Pydantic models for JSON API requests/responses.

Request models convert to the frozen domain commands with ``to_domain()``;
the domain layer never sees pydantic types.
"""

from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from paypal_orchestrator.models.order import (
    ActionRequired,
    Address,
    Captured,
    CheckoutLine,
    CheckoutSnapshot,
    CreateOrderCommand,
    Created,
    Failed,
    OrderAction,
    OrderResult,
    VaultingRequest,
)
from paypal_orchestrator.models.payment_method import PaymentMethodKind
from paypal_orchestrator.models.tenant import PayPalEnvironment
from paypal_orchestrator.models.vault import PaymentToken, SetupToken
from paypal_orchestrator.paypal.environment import dashboard_url

FAILED_MESSAGE = "Payment failed"


class AddressJSON(BaseModel):
    first_name: str = ""
    last_name: str = ""
    street_address_1: str = ""
    street_address_2: str = ""
    city: str = ""
    country_area: str = ""
    postal_code: str = ""
    country_code: str = Field("", description="ISO 3166-1 alpha-2 country code")
    phone: Optional[str] = None

    def to_domain(self) -> Address:
        return Address(**self.model_dump())


class CheckoutLineJSON(BaseModel):
    name: str
    quantity: int = Field(..., gt=0)
    unit_price_net: Decimal = Field(..., ge=0)
    sku: Optional[str] = None
    image_url: Optional[str] = None

    def to_domain(self) -> CheckoutLine:
        return CheckoutLine(**self.model_dump())


class CheckoutJSON(BaseModel):
    """Snapshot of the platform checkout (or order) being paid."""

    source_id: str = Field(..., description="Checkout or order id on the platform")
    source_type: str = Field("Checkout", description="Checkout or Order")
    channel_id: Optional[str] = None
    lines: list[CheckoutLineJSON] = Field(default_factory=list)
    subtotal_net: Decimal = Decimal(0)
    subtotal_tax: Decimal = Decimal(0)
    shipping_net: Decimal = Decimal(0)
    shipping_tax: Decimal = Decimal(0)
    shipping_gross: Decimal = Decimal(0)
    is_shipping_required: Optional[bool] = None
    email: Optional[str] = None
    shipping_address: Optional[AddressJSON] = None
    billing_address: Optional[AddressJSON] = None

    def to_domain(self) -> CheckoutSnapshot:
        return CheckoutSnapshot(
            source_id=self.source_id,
            source_type=self.source_type,
            channel_id=self.channel_id,
            lines=[line.to_domain() for line in self.lines],
            subtotal_net=self.subtotal_net,
            subtotal_tax=self.subtotal_tax,
            shipping_net=self.shipping_net,
            shipping_tax=self.shipping_tax,
            shipping_gross=self.shipping_gross,
            is_shipping_required=self.is_shipping_required,
            email=self.email,
            shipping_address=self.shipping_address.to_domain() if self.shipping_address else None,
            billing_address=self.billing_address.to_domain() if self.billing_address else None,
        )


class CreateOrderRequestJSON(BaseModel):
    """JSON request model for creating a PayPal order for a platform transaction."""

    transaction_id: str = Field(..., description="Platform transaction id")
    amount: Decimal = Field(..., description="Decimal amount in major units")
    currency: str = Field(..., description="ISO 4217 currency code")
    action: OrderAction = Field(OrderAction.CHARGE, description="CHARGE or AUTHORIZATION")
    checkout: Optional[CheckoutJSON] = None
    payment_method_type: Optional[str] = Field(
        None, description="card, paypal, venmo or apple_pay (default card)"
    )
    save_payment_method: bool = False
    vault_id: Optional[str] = Field(None, description="Vaulted payment token to charge")
    user_id: Optional[str] = Field(None, description="Signed-in platform buyer id")
    merchant_initiated: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "transaction_id": "VHJhbnNhY3Rpb25JdGVtOjE=",
                "amount": "42.00",
                "currency": "USD",
                "action": "CHARGE",
                "payment_method_type": "paypal",
                "save_payment_method": True,
                "user_id": "VXNlcjoxMg==",
                "checkout": {
                    "source_id": "Q2hlY2tvdXQ6MQ==",
                    "lines": [{"name": "Mug", "quantity": 2, "unit_price_net": "20.00"}],
                    "subtotal_net": "40.00",
                    "subtotal_tax": "2.00",
                },
            }
        }

    def to_domain(self, idempotency_key: str | None = None) -> CreateOrderCommand:
        """
        Raises:
            ValidationError: Unsupported payment method type
        """
        return CreateOrderCommand(
            transaction_id=self.transaction_id,
            amount=self.amount,
            currency=self.currency,
            action=self.action,
            checkout=self.checkout.to_domain() if self.checkout else None,
            vaulting=VaultingRequest(
                payment_method_type=PaymentMethodKind.parse(self.payment_method_type),
                save_payment_method=self.save_payment_method,
                vault_id=self.vault_id,
                platform_user_id=self.user_id,
                merchant_initiated=self.merchant_initiated,
            ),
            idempotency_key=idempotency_key,
        )


class PatchOperationJSON(BaseModel):
    op: Literal["add", "replace", "remove"]
    path: str
    value: Any = None


class UpdateOrderRequestJSON(BaseModel):
    operations: list[PatchOperationJSON] = Field(default_factory=list)

    def to_domain(self) -> list[dict[str, Any]]:
        return [op.model_dump(exclude_none=op.op == "remove") for op in self.operations]


class OrderResponseJSON(BaseModel):
    """JSON response model for any order operation."""

    result: Literal["CREATED", "ACTION_REQUIRED", "CAPTURED", "FAILED"]
    order_id: Optional[str] = None
    status: Optional[str] = None
    approval_url: Optional[str] = None
    vaulting: Optional[dict[str, Any]] = None
    amount: Optional[dict[str, str]] = None
    psp_reference: Optional[str] = None
    vault_id: Optional[str] = None
    message: Optional[str] = None
    error_code: Optional[str] = None
    environment: Optional[str] = None
    dashboard_url: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "result": "ACTION_REQUIRED",
                "order_id": "5O190127TN364715T",
                "status": "PAYER_ACTION_REQUIRED",
                "approval_url": "https://www.sandbox.paypal.com/checkoutnow?token=5O190127TN364715T",
                "vaulting": {"enabled": True, "customer_id": "VXNlcjoxMg==", "is_return_buyer": False},
                "environment": "SANDBOX",
                "dashboard_url": "https://www.sandbox.paypal.com/activity/payment/5O190127TN364715T",
            }
        }

    @classmethod
    def from_result(cls, result: OrderResult, environment: PayPalEnvironment) -> "OrderResponseJSON":
        """Render an order result. Failures carry a safe message and the error code only."""
        order_id = result.order_id
        links = {
            "environment": environment.value,
            "dashboard_url": dashboard_url(environment, order_id) if order_id else None,
        }
        if isinstance(result, ActionRequired):
            return cls(
                result="ACTION_REQUIRED",
                order_id=order_id,
                status=result.status,
                approval_url=result.approval_url,
                vaulting=result.vaulting.to_dict() if result.vaulting else None,
                **links,
            )
        if isinstance(result, Captured):
            return cls(
                result="CAPTURED",
                order_id=order_id,
                status=result.status,
                amount=result.amount.to_dict() if result.amount else None,
                psp_reference=result.psp_reference,
                vault_id=result.vault_id,
                **links,
            )
        if isinstance(result, Created):
            return cls(result="CREATED", order_id=order_id, status=result.status, **links)
        if isinstance(result, Failed):
            return cls(
                result="FAILED",
                order_id=order_id,
                message=FAILED_MESSAGE,
                error_code=result.error.code,
                **links,
            )
        raise TypeError(f"Unexpected order result: {type(result).__name__}")


class SetupTokenRequestJSON(BaseModel):
    payment_method_type: str = Field("card", description="card, paypal or venmo")
    verification_method: Optional[str] = Field(None, description="Card verification (default SCA_WHEN_REQUIRED)")
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None
    description: Optional[str] = None


class SetupTokenResponseJSON(BaseModel):
    id: str
    status: str
    payment_method_type: str
    customer_id: Optional[str] = None
    approval_url: Optional[str] = None

    @classmethod
    def from_domain(cls, token: SetupToken) -> "SetupTokenResponseJSON":
        return cls(
            id=token.id,
            status=token.status.value,
            payment_method_type=token.payment_method_kind.value,
            customer_id=token.customer_id,
            approval_url=token.approval_url,
        )


class PaymentTokenRequestJSON(BaseModel):
    setup_token_id: str = Field(..., description="Approved setup token")


class PaymentTokenResponseJSON(BaseModel):
    id: str
    customer_id: Optional[str] = None
    payment_method_type: str
    display_details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, token: PaymentToken) -> "PaymentTokenResponseJSON":
        return cls(
            id=token.id,
            customer_id=token.customer_id,
            payment_method_type=token.payment_method_kind.value,
            display_details=token.display_details,
        )


class IdTokenResponseJSON(BaseModel):
    id_token: str
    customer_id: str


class ClientTokenResponseJSON(BaseModel):
    client_token: str
