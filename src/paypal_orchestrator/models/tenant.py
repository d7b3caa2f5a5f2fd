"""Per-tenant PayPal configuration."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class PayPalEnvironment(str, Enum):
    """PayPal API environment."""

    SANDBOX = "SANDBOX"
    LIVE = "LIVE"


@dataclass(frozen=True)
class TenantConfig:
    """
    PayPal configuration for one merchant platform tenant.

    ``tenant_id`` is the merchant platform's API URL, which is also where
    storefront identity and transaction reports are sent.
    """

    tenant_id: str
    client_id: str
    client_secret: str
    environment: PayPalEnvironment = PayPalEnvironment.SANDBOX
    merchant_id: str | None = None
    merchant_email: str | None = None
    webhook_id: str | None = None
    partner_fee_percent: Decimal | None = None
    soft_descriptor: str | None = None
    platform_app_token: str | None = None
    service_auth_secret: str | None = None

    def __repr__(self) -> str:
        # Secrets stay out of reprs and tracebacks
        return (
            f"TenantConfig(tenant_id={self.tenant_id!r}, client_id={self.client_id!r}, "
            f"environment={self.environment.value}, merchant_id={self.merchant_id!r})"
        )

    @property
    def credentials(self) -> "PayPalCredentials":
        return PayPalCredentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            environment=self.environment,
            merchant_id=self.merchant_id,
        )


@dataclass(frozen=True)
class PayPalCredentials:
    """What the transport needs to authenticate a call."""

    client_id: str
    client_secret: str
    environment: PayPalEnvironment = PayPalEnvironment.SANDBOX
    merchant_id: str | None = None

    def __repr__(self) -> str:
        return (
            f"PayPalCredentials(client_id={self.client_id!r}, "
            f"environment={self.environment.value}, merchant_id={self.merchant_id!r})"
        )
