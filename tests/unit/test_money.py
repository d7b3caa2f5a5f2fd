"""Unit tests for money normalization."""

from decimal import Decimal

import pytest

from paypal_orchestrator.models.exceptions import ValidationError
from paypal_orchestrator.models.money import (
    Money,
    from_minor_units,
    money_sum,
    percentage_of,
    to_processor_money,
)


class TestToProcessorMoney:
    """Test suite for major-unit normalization."""

    @pytest.mark.parametrize(
        "amount,currency,expected",
        [
            (Decimal("42"), "USD", "42.00"),
            ("42.5", "usd", "42.50"),
            (42, "EUR", "42.00"),
            (Decimal("1000"), "JPY", "1000"),
            (Decimal("1.2345"), "KWD", "1.235"),
            (Decimal("0.005"), "USD", "0.01"),
            (Decimal("0"), "USD", "0.00"),
        ],
    )
    def test_value_has_currency_exponent(self, amount, currency, expected):
        money = to_processor_money(amount, currency)

        assert money.value == expected
        assert money.currency_code == currency.upper()

    def test_float_goes_through_string(self):
        """0.1 + 0.2 style artifacts never reach PayPal."""
        assert to_processor_money(0.1, "USD").value == "0.10"
        assert to_processor_money(19.99, "USD").value == "19.99"

    def test_rounds_half_up(self):
        assert to_processor_money(Decimal("2.675"), "USD").value == "2.68"
        assert to_processor_money(Decimal("2.5"), "JPY").value == "3"

    @pytest.mark.parametrize("amount", ["-1", Decimal("-0.01"), "NaN", "Infinity", "abc", True])
    def test_rejects_invalid_amounts(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            to_processor_money(amount, "USD")

        assert exc_info.value.code == "INVALID_AMOUNT"

    @pytest.mark.parametrize("currency", ["", "US", "USDX", "12$"])
    def test_rejects_invalid_currency(self, currency):
        with pytest.raises(ValidationError) as exc_info:
            to_processor_money("1.00", currency)

        assert exc_info.value.code == "INVALID_CURRENCY"

    def test_to_dict_is_paypal_shape(self):
        assert to_processor_money("5", "GBP").to_dict() == {"currency_code": "GBP", "value": "5.00"}


class TestMinorUnitsAndArithmetic:
    """Test suite for minor-unit conversion, sums and percentages."""

    def test_from_minor_units(self):
        assert from_minor_units(1299, "USD").value == "12.99"
        assert from_minor_units(1299, "JPY").value == "1299"
        assert from_minor_units(1299, "BHD").value == "1.299"

    def test_from_minor_units_requires_integer(self):
        with pytest.raises(ValidationError):
            from_minor_units(12.5, "USD")

    def test_money_sum(self):
        total = money_sum(
            [to_processor_money("40", "USD"), to_processor_money("2", "USD")], "USD"
        )

        assert total == Money(currency_code="USD", value="42.00")

    def test_money_sum_rejects_mixed_currencies(self):
        with pytest.raises(ValidationError) as exc_info:
            money_sum([to_processor_money("1", "USD"), to_processor_money("1", "EUR")], "USD")

        assert exc_info.value.code == "CURRENCY_MISMATCH"

    def test_percentage_of(self):
        fee = percentage_of(to_processor_money("42.00", "USD"), Decimal("2.5"))

        assert fee.value == "1.05"
        assert fee.currency_code == "USD"
