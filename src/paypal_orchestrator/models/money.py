"""Money/amount normalization.

PayPal expresses money as ``{"currency_code": "USD", "value": "42.00"}``
where ``value`` is a decimal string with exactly the currency's number of
fraction digits. Platform amounts arrive as decimals in major units (or,
occasionally, integer minor units) and are normalized here.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from paypal_orchestrator.models.exceptions import ValidationError

ZERO_DECIMAL_CURRENCIES = frozenset({"HUF", "JPY", "TWD", "KRW", "CLP", "VND", "ISK"})
THREE_DECIMAL_CURRENCIES = frozenset({"BHD", "JOD", "KWD", "OMR", "TND"})

# Maximum length of a PayPal amount value string
MAX_VALUE_LENGTH = 32


def currency_exponent(currency: str) -> int:
    """Number of fraction digits PayPal expects for a currency."""
    if currency in ZERO_DECIMAL_CURRENCIES:
        return 0
    if currency in THREE_DECIMAL_CURRENCIES:
        return 3
    return 2


def normalize_currency(currency: str) -> str:
    """Validate and upper-case an ISO 4217 currency code."""
    code = (currency or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError(f"Invalid currency code: {currency!r}", code="INVALID_CURRENCY")
    return code


def _to_decimal(amount: Decimal | int | float | str) -> Decimal:
    if isinstance(amount, bool):
        raise ValidationError("Amount must be a number", code="INVALID_AMOUNT")
    try:
        # float goes through str to avoid binary artifacts (0.1 -> 0.1000000000000000055...)
        value = Decimal(str(amount)) if isinstance(amount, float) else Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValidationError(f"Amount is not a number: {amount!r}", code="INVALID_AMOUNT") from e
    if not value.is_finite():
        raise ValidationError("Amount must be finite", code="INVALID_AMOUNT")
    if value < 0:
        raise ValidationError("Amount must not be negative", code="INVALID_AMOUNT")
    return value


@dataclass(frozen=True)
class Money:
    """A normalized amount in a single currency."""

    currency_code: str
    value: str

    def as_decimal(self) -> Decimal:
        return Decimal(self.value)

    def to_dict(self) -> dict[str, str]:
        return {"currency_code": self.currency_code, "value": self.value}


def to_processor_money(amount: Decimal | int | float | str, currency: str) -> Money:
    """
    Normalize a major-unit amount into PayPal's money representation.

    Args:
        amount: Amount in major units (e.g. ``42``, ``"42.5"``, ``Decimal("42.50")``)
        currency: ISO 4217 currency code, any case

    Returns:
        Money with the value quantized (ROUND_HALF_UP) to the currency exponent

    Raises:
        ValidationError: Unknown currency shape, non-numeric, negative or
            non-finite amount
    """
    code = normalize_currency(currency)
    value = _to_decimal(amount)
    exponent = currency_exponent(code)
    quantized = value.quantize(Decimal(1).scaleb(-exponent), rounding=ROUND_HALF_UP)
    text = f"{quantized:.{exponent}f}"
    if len(text) > MAX_VALUE_LENGTH:
        raise ValidationError("Amount is too large", code="INVALID_AMOUNT")
    return Money(currency_code=code, value=text)


def from_minor_units(minor: int, currency: str) -> Money:
    """Normalize an integer minor-unit amount (e.g. cents) into Money."""
    if isinstance(minor, bool) or not isinstance(minor, int):
        raise ValidationError("Minor-unit amount must be an integer", code="INVALID_AMOUNT")
    code = normalize_currency(currency)
    return to_processor_money(Decimal(minor).scaleb(-currency_exponent(code)), code)


def money_sum(amounts: Iterable[Money], currency: str) -> Money:
    """Sum amounts that share ``currency``."""
    code = normalize_currency(currency)
    total = Decimal(0)
    for money in amounts:
        if money.currency_code != code:
            raise ValidationError(
                f"Currency mismatch: {money.currency_code} != {code}",
                code="CURRENCY_MISMATCH",
            )
        total += money.as_decimal()
    return to_processor_money(total, code)


def percentage_of(money: Money, percent: Decimal | int | float | str) -> Money:
    """Straight percentage of an amount, e.g. a platform fee."""
    pct = _to_decimal(percent)
    return to_processor_money(money.as_decimal() * pct / Decimal(100), money.currency_code)
