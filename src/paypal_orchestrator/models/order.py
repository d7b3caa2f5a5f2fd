"""Order domain models: checkout input and interpreted order results."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Union

from paypal_orchestrator.models.errors import PaymentError
from paypal_orchestrator.models.money import Money
from paypal_orchestrator.models.payment_method import PaymentMethodKind


class OrderAction(str, Enum):
    """Action requested by the merchant platform."""

    CHARGE = "CHARGE"
    AUTHORIZATION = "AUTHORIZATION"


class OrderIntent(str, Enum):
    """PayPal order intent."""

    CAPTURE = "CAPTURE"
    AUTHORIZE = "AUTHORIZE"

    @classmethod
    def from_action(cls, action: OrderAction) -> "OrderIntent":
        return cls.CAPTURE if action == OrderAction.CHARGE else cls.AUTHORIZE


class VaultingMode(str, Enum):
    """How (if at all) an order participates in vaulting."""

    NONE = "NONE"
    SAVE_DURING_PURCHASE = "SAVE_DURING_PURCHASE"
    RETURN_BUYER = "RETURN_BUYER"
    # Hosted card fields: the JS SDK vaults using a user id token
    CLIENT_TOKEN = "CLIENT_TOKEN"


@dataclass(frozen=True)
class Address:
    """Postal address as supplied by the merchant platform."""

    first_name: str = ""
    last_name: str = ""
    street_address_1: str = ""
    street_address_2: str = ""
    city: str = ""
    country_area: str = ""
    postal_code: str = ""
    country_code: str = ""
    phone: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class CheckoutLine:
    """One purchasable line of a checkout."""

    name: str
    quantity: int
    unit_price_net: Decimal
    sku: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class CheckoutSnapshot:
    """Read-only view of the platform checkout used to build an order."""

    source_id: str
    source_type: str = "Checkout"
    channel_id: str | None = None
    lines: list[CheckoutLine] = field(default_factory=list)
    subtotal_net: Decimal = Decimal(0)
    subtotal_tax: Decimal = Decimal(0)
    shipping_net: Decimal = Decimal(0)
    shipping_tax: Decimal = Decimal(0)
    shipping_gross: Decimal = Decimal(0)
    is_shipping_required: bool | None = None
    email: str | None = None
    shipping_address: Address | None = None
    billing_address: Address | None = None


@dataclass(frozen=True)
class VaultingRequest:
    """Buyer's vaulting choices for this checkout."""

    payment_method_type: PaymentMethodKind = PaymentMethodKind.CARD
    save_payment_method: bool = False
    vault_id: str | None = None
    platform_user_id: str | None = None
    merchant_initiated: bool = False


@dataclass(frozen=True)
class CreateOrderCommand:
    """Everything needed to create one PayPal order for one transaction."""

    transaction_id: str
    amount: Decimal
    currency: str
    action: OrderAction = OrderAction.CHARGE
    checkout: CheckoutSnapshot | None = None
    vaulting: VaultingRequest = field(default_factory=VaultingRequest)
    idempotency_key: str | None = None


@dataclass(frozen=True)
class VaultingSummary:
    """Vaulting state returned to the storefront alongside an order."""

    mode: VaultingMode
    customer_id: str | None = None

    @property
    def enabled(self) -> bool:
        return self.mode in (VaultingMode.SAVE_DURING_PURCHASE, VaultingMode.CLIENT_TOKEN)

    @property
    def is_return_buyer(self) -> bool:
        return self.mode == VaultingMode.RETURN_BUYER

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "customer_id": self.customer_id,
            "is_return_buyer": self.is_return_buyer,
        }


@dataclass(frozen=True)
class Created:
    """Order exists at PayPal and is still waiting on the buyer."""

    order_id: str
    status: str


@dataclass(frozen=True)
class ActionRequired:
    """Buyer must complete an out-of-band step (approval, 3-D Secure)."""

    order_id: str
    status: str
    approval_url: str | None = None
    vaulting: VaultingSummary | None = None


@dataclass(frozen=True)
class Captured:
    """Funds captured or authorized. Terminal."""

    order_id: str
    status: str
    amount: Money | None = None
    psp_reference: str | None = None
    vault_id: str | None = None


@dataclass(frozen=True)
class Failed:
    """Order failed. Terminal. Carries a translated error only."""

    error: PaymentError
    order_id: str | None = None


OrderResult = Union[Created, ActionRequired, Captured, Failed]
