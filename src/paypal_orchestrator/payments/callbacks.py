"""
Server-side shipping callbacks.

While the buyer is on PayPal, address and shipping-option changes are
posted to the callback URL advertised in the order's experience context.
PayPal expects the purchase units back with the selected option marked
and the amount recomputed; a 422 with an issue code makes PayPal show the
buyer an error instead.

Callbacks are not signed, so the answer is derived only from what PayPal
sent and nothing is written.
"""

from decimal import Decimal
from typing import Any

from paypal_orchestrator.models.exceptions import ValidationError
from paypal_orchestrator.models.money import to_processor_money

ADDITIVE_BREAKDOWN_KEYS = ("item_total", "tax_total", "shipping", "handling", "insurance")
SUBTRACTIVE_BREAKDOWN_KEYS = ("shipping_discount", "discount")


class CallbackRejected(Exception):
    """The buyer's change cannot be accepted; ``issue`` is PayPal's code."""

    def __init__(self, issue: str, message: str) -> None:
        super().__init__(message)
        self.issue = issue


def _breakdown_value(breakdown: dict[str, Any], key: str, currency: str) -> Decimal:
    entry = breakdown.get(key)
    if not isinstance(entry, dict) or "value" not in entry:
        raise ValidationError(f"Breakdown {key} has no value", code="INVALID_CALLBACK")
    return to_processor_money(entry["value"], currency).as_decimal()


def recompute_total(breakdown: dict[str, Any], currency: str) -> dict[str, str]:
    """Order total implied by an amount breakdown."""
    total = Decimal("0")
    for key in ADDITIVE_BREAKDOWN_KEYS:
        if key in breakdown:
            total += _breakdown_value(breakdown, key, currency)
    for key in SUBTRACTIVE_BREAKDOWN_KEYS:
        if key in breakdown:
            total -= _breakdown_value(breakdown, key, currency)
    if total < 0:
        raise CallbackRejected("METHOD_UNAVAILABLE", "Discounts exceed the order total")
    return to_processor_money(total, currency).to_dict()


def _select_option(options: list[dict[str, Any]], selected: dict[str, Any] | None) -> dict[str, Any] | None:
    if not options:
        return None
    selected_id = (selected or {}).get("id")
    if selected_id is None:
        # No explicit choice: keep the option PayPal already marks as selected
        return next((option for option in options if option.get("selected")), options[0])

    match = next((option for option in options if option.get("id") == selected_id), None)
    if match is None:
        raise CallbackRejected("METHOD_UNAVAILABLE", f"Shipping option {selected_id!r} is not offered")
    return match


def answer_purchase_unit(unit: dict[str, Any], selected: dict[str, Any] | None) -> dict[str, Any]:
    """Purchase unit as it should look after the buyer's change."""
    amount = unit.get("amount") or {}
    currency = amount.get("currency_code")
    if not currency or "value" not in amount:
        raise ValidationError("Purchase unit has no amount", code="INVALID_CALLBACK")

    options = [dict(option) for option in unit.get("shipping_options") or [] if isinstance(option, dict)]
    chosen = _select_option(options, selected)
    for option in options:
        option["selected"] = option is chosen

    breakdown = dict(amount.get("breakdown") or {})
    option_amount = (chosen or {}).get("amount")
    if isinstance(option_amount, dict) and "value" in option_amount and "shipping" in breakdown:
        breakdown["shipping"] = to_processor_money(option_amount["value"], currency).to_dict()

    answered: dict[str, Any] = {"reference_id": unit.get("reference_id", "default")}
    if breakdown:
        answered["amount"] = {**recompute_total(breakdown, currency), "breakdown": breakdown}
    else:
        answered["amount"] = to_processor_money(amount["value"], currency).to_dict()
    if options:
        answered["shipping_options"] = options
    return answered


def build_callback_response(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Answer one order-update callback.

    Raises:
        ValidationError: The callback is not shaped like a PayPal callback
        CallbackRejected: The buyer's address or option cannot be used
    """
    order_id = payload.get("id")
    units = payload.get("purchase_units")
    if not order_id or not isinstance(units, list) or not units:
        raise ValidationError("Callback has no order id or purchase units", code="INVALID_CALLBACK")
    if not all(isinstance(unit, dict) for unit in units):
        raise ValidationError("Purchase units must be objects", code="INVALID_CALLBACK")

    address = payload.get("shipping_address")
    if address is not None and not (isinstance(address, dict) and address.get("country_code")):
        raise CallbackRejected("COUNTRY_ERROR", "Shipping address has no country")

    selected = payload.get("shipping_option")
    if selected is not None and not isinstance(selected, dict):
        raise ValidationError("Shipping option must be an object", code="INVALID_CALLBACK")
    return {
        "id": order_id,
        "purchase_units": [answer_purchase_unit(unit, selected) for unit in units],
    }
