"""Extraction of order fields from a platform checkout snapshot."""

import re
from decimal import Decimal
from typing import Any

import structlog

from paypal_orchestrator.models.money import Money, to_processor_money
from paypal_orchestrator.models.order import Address, CheckoutSnapshot

logger = structlog.get_logger(__name__)

MAX_ITEM_NAME_LENGTH = 127
MAX_SOFT_DESCRIPTOR_LENGTH = 22
BREAKDOWN_TOLERANCE = Decimal("0.02")
PHONE_MIN_DIGITS = 4
PHONE_MAX_DIGITS = 15

_NON_DIGITS = re.compile(r"\D")


def is_digital(checkout: CheckoutSnapshot) -> bool:
    """Nothing ships: explicitly not required, or no address and no shipping cost."""
    if checkout.is_shipping_required is False:
        return True
    return checkout.shipping_address is None and checkout.shipping_gross == 0


def shipping_preference(checkout: CheckoutSnapshot | None) -> str:
    if checkout is None or is_digital(checkout):
        return "NO_SHIPPING"
    if checkout.shipping_address is not None:
        return "SET_PROVIDED_ADDRESS"
    return "GET_FROM_FILE"


def build_items(checkout: CheckoutSnapshot, currency: str) -> list[dict[str, Any]]:
    category = "DIGITAL_GOODS" if is_digital(checkout) else "PHYSICAL_GOODS"
    items = []
    for line in checkout.lines:
        item: dict[str, Any] = {
            "name": line.name[:MAX_ITEM_NAME_LENGTH],
            "quantity": str(line.quantity),
            "unit_amount": to_processor_money(line.unit_price_net, currency).to_dict(),
            "category": category,
        }
        if line.sku:
            item["sku"] = line.sku
        if line.image_url:
            item["image_url"] = line.image_url
        items.append(item)
    return items


def build_breakdown(checkout: CheckoutSnapshot, currency: str) -> tuple[dict[str, Any], Decimal]:
    """Breakdown with zero components left out, and the sum of all components."""
    components = {
        "item_total": to_processor_money(checkout.subtotal_net, currency),
        "shipping": to_processor_money(checkout.shipping_net, currency),
        "tax_total": to_processor_money(checkout.subtotal_tax + checkout.shipping_tax, currency),
    }
    breakdown = {
        name: money.to_dict() for name, money in components.items() if money.as_decimal() > 0
    }
    total = sum((money.as_decimal() for money in components.values()), Decimal(0))
    return breakdown, total


def items_and_breakdown(
    amount: Money, checkout: CheckoutSnapshot | None
) -> tuple[list[dict[str, Any]] | None, dict[str, Any] | None]:
    """
    Line items and amount breakdown, or ``(None, None)``.

    PayPal rejects the whole order when the breakdown does not add up, so
    both are sent only when ``item_total + shipping + tax_total`` is within
    two cents of the order amount.
    """
    if checkout is None:
        return None, None

    breakdown, total = build_breakdown(checkout, amount.currency_code)
    difference = abs(total - amount.as_decimal())
    if difference >= BREAKDOWN_TOLERANCE:
        logger.warning(
            "order_breakdown_mismatch",
            amount=amount.value,
            breakdown_total=str(total),
            difference=str(difference),
            source_id=checkout.source_id,
        )
        return None, None

    items = build_items(checkout, amount.currency_code)
    return (items or None), breakdown


def normalize_phone(phone: str | None) -> str | None:
    """Digits only; None unless 4 to 15 digits remain."""
    if not phone:
        return None
    digits = _NON_DIGITS.sub("", phone)
    if PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
        return digits
    return None


def build_payer(checkout: CheckoutSnapshot | None) -> dict[str, Any] | None:
    if checkout is None:
        return None

    payer: dict[str, Any] = {}
    if checkout.email:
        payer["email_address"] = checkout.email

    billing = checkout.billing_address
    if billing is not None:
        name = {}
        if billing.first_name:
            name["given_name"] = billing.first_name
        if billing.last_name:
            name["surname"] = billing.last_name
        if name:
            payer["name"] = name

        phone = normalize_phone(billing.phone)
        if phone:
            payer["phone"] = {
                "phone_type": "MOBILE",
                "phone_number": {"national_number": phone},
            }

        address = _address_portable(billing)
        if address:
            payer["address"] = address

    return payer or None


def _address_portable(address: Address) -> dict[str, str]:
    fields = {
        "address_line_1": address.street_address_1,
        "address_line_2": address.street_address_2,
        "admin_area_2": address.city,
        "admin_area_1": address.country_area,
        "postal_code": address.postal_code,
        "country_code": address.country_code.upper(),
    }
    if not fields["country_code"]:
        return {}
    return {key: value for key, value in fields.items() if value}


def build_shipping(checkout: CheckoutSnapshot | None) -> dict[str, Any] | None:
    """Shipping block when an address is known and goods ship."""
    if checkout is None or is_digital(checkout) or checkout.shipping_address is None:
        return None

    address = _address_portable(checkout.shipping_address)
    if not address:
        return None

    shipping: dict[str, Any] = {"address": address}
    full_name = checkout.shipping_address.full_name
    if full_name:
        shipping["name"] = {"full_name": full_name}
    return shipping


def normalize_soft_descriptor(value: str | None) -> str | None:
    if not value:
        return None
    trimmed = value.strip()[:MAX_SOFT_DESCRIPTOR_LENGTH]
    return trimmed or None
