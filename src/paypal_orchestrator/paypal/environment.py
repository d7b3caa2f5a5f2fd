"""PayPal environment endpoints."""

from paypal_orchestrator.models.exceptions import ValidationError
from paypal_orchestrator.models.tenant import PayPalEnvironment

API_BASE_URLS: dict[PayPalEnvironment, str] = {
    PayPalEnvironment.SANDBOX: "https://api-m.sandbox.paypal.com",
    PayPalEnvironment.LIVE: "https://api-m.paypal.com",
}

DASHBOARD_BASE_URLS: dict[PayPalEnvironment, str] = {
    PayPalEnvironment.SANDBOX: "https://www.sandbox.paypal.com",
    PayPalEnvironment.LIVE: "https://www.paypal.com",
}


def parse_environment(value: str | PayPalEnvironment) -> PayPalEnvironment:
    """Accept ``SANDBOX``/``LIVE`` in any case; ``production`` means LIVE."""
    if isinstance(value, PayPalEnvironment):
        return value
    normalized = (value or "").strip().upper()
    if normalized == "PRODUCTION":
        return PayPalEnvironment.LIVE
    try:
        return PayPalEnvironment(normalized)
    except ValueError as e:
        raise ValidationError(
            f"Unknown PayPal environment: {value!r}", code="INVALID_ENVIRONMENT"
        ) from e


def api_base_url(environment: PayPalEnvironment) -> str:
    return API_BASE_URLS[environment]


def dashboard_url(environment: PayPalEnvironment, order_id: str) -> str:
    """Merchant dashboard link for an order."""
    return f"{DASHBOARD_BASE_URLS[environment]}/activity/payment/{order_id}"
