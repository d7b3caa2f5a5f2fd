"""Vaulting domain models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from paypal_orchestrator.models.payment_method import PaymentMethodKind


@dataclass(frozen=True)
class VaultCustomerMapping:
    """
    Link between a platform buyer and a PayPal vault customer.

    One per (tenant_id, platform_user_id). Never updated after creation.
    """

    tenant_id: str
    platform_user_id: str
    processor_customer_id: str
    created_at: datetime | None = None


class SetupTokenStatus(str, Enum):
    """Remote status of a setup token."""

    CREATED = "CREATED"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value: str | None) -> "SetupTokenStatus":
        # PayPal reports a freshly created setup token awaiting buyer approval
        # as PAYER_ACTION_REQUIRED
        if value == "PAYER_ACTION_REQUIRED" or not value:
            return cls.CREATED
        if value in ("TOKENIZED", "VAULTED"):
            return cls.APPROVED
        return cls(value)


@dataclass(frozen=True)
class SetupToken:
    """A pending, buyer-approvable intent to vault a payment method."""

    id: str
    status: SetupTokenStatus
    payment_method_kind: PaymentMethodKind
    customer_id: str | None = None
    approval_url: str | None = None


@dataclass(frozen=True)
class PaymentToken:
    """A durable vaulted payment method (vault id)."""

    id: str
    customer_id: str | None
    payment_method_kind: PaymentMethodKind
    display_details: dict[str, Any] = field(default_factory=dict)
