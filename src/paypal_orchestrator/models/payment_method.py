"""Payment method kinds."""

from enum import Enum

from paypal_orchestrator.models.exceptions import ValidationError


class PaymentMethodKind(str, Enum):
    """
    Closed set of payment-source branches.

    The value is the top-level key of the branch in a PayPal
    ``payment_source`` object. Consumers dispatch exhaustively and end with
    ``assert_never`` so a new member cannot be added silently.
    """

    CARD = "card"
    PAYPAL = "paypal"
    VENMO = "venmo"
    APPLE_PAY = "apple_pay"

    @classmethod
    def parse(cls, value: str | None) -> "PaymentMethodKind":
        """Parse a client-supplied kind; missing means card."""
        if not value:
            return cls.CARD
        try:
            return cls(value.strip().lower())
        except ValueError as e:
            raise ValidationError(
                f"Unsupported payment method type: {value!r}",
                code="UNSUPPORTED_PAYMENT_METHOD",
            ) from e


PAYMENT_SOURCE_KEYS = frozenset(kind.value for kind in PaymentMethodKind)
