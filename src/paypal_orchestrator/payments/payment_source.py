"""
Payment source construction.

PayPal's ``payment_source`` object has one top-level branch per payment
method (``card``, ``paypal``, ``venmo``, ``apple_pay``). A request carrying
more than one populated branch is rejected with 422, so the builder always
strips everything except the selected kind, and omits the object entirely
when nothing is left (hosted card fields attach the card after creation).

Rules, in order:
1. Return buyer: the selected branch carries ``vault_id``. Card and Apple
   Pay merchant-initiated charges also carry a ``stored_credential``.
2. Save during purchase: vault attributes and the customer id are attached
   to the selected branch. Hosted card fields are the exception: vaulting
   happens client-side with a user id token.
3. Strip every other branch.
"""

import copy
from dataclasses import dataclass
from typing import Any, Mapping, assert_never

import structlog

from paypal_orchestrator.models.order import VaultingMode
from paypal_orchestrator.models.payment_method import PaymentMethodKind

logger = structlog.get_logger(__name__)

MIT_STORED_CREDENTIAL = {
    "payment_initiator": "MERCHANT",
    "payment_type": "UNSCHEDULED",
    "usage": "SUBSEQUENT",
}


@dataclass(frozen=True)
class PaymentSourceDescriptor:
    """Built payment source plus the vaulting mode it implies."""

    kind: PaymentMethodKind
    payload: dict[str, Any] | None
    vaulting_mode: VaultingMode = VaultingMode.NONE
    customer_id: str | None = None

    def to_request(self) -> dict[str, Any] | None:
        """The ``payment_source`` value to send, or None to omit the key."""
        return copy.deepcopy(self.payload) if self.payload else None


def supports_stored_credential(kind: PaymentMethodKind) -> bool:
    """Whether a vaulted charge of this kind carries ``stored_credential``."""
    if kind is PaymentMethodKind.CARD or kind is PaymentMethodKind.APPLE_PAY:
        return True
    elif kind is PaymentMethodKind.PAYPAL or kind is PaymentMethodKind.VENMO:
        # The vault id itself carries the buyer's consent
        return False
    else:
        assert_never(kind)


def vault_attributes(kind: PaymentMethodKind, customer_id: str) -> dict[str, Any]:
    """``attributes`` block requesting save-during-purchase for one branch."""
    if kind is PaymentMethodKind.CARD:
        return {
            "customer": {"id": customer_id},
            "vault": {"store_in_vault": "ON_SUCCESS"},
            "verification": {"method": "SCA_WHEN_REQUIRED"},
        }
    elif (
        kind is PaymentMethodKind.PAYPAL
        or kind is PaymentMethodKind.VENMO
        or kind is PaymentMethodKind.APPLE_PAY
    ):
        return {
            "customer": {"id": customer_id},
            "vault": {"store_in_vault": "ON_SUCCESS", "usage_type": "MERCHANT"},
        }
    else:
        assert_never(kind)


class PaymentSourceBuilder:
    """Builds exactly one payment-source branch for an order."""

    def build(
        self,
        kind: PaymentMethodKind,
        *,
        vault_intent: bool = False,
        return_buyer_token_id: str | None = None,
        vault_customer_id: str | None = None,
        is_merchant_initiated: bool = False,
        base: Mapping[str, Any] | None = None,
        hosted_card_fields: bool = True,
    ) -> PaymentSourceDescriptor:
        """
        Build the payment source for ``kind``.

        Args:
            kind: Selected payment method
            vault_intent: Buyer asked to save the method during this purchase
            return_buyer_token_id: Vault id of a previously saved method
            vault_customer_id: PayPal vault customer id of the buyer
            is_merchant_initiated: Charge happens without the buyer present
            base: Branches assembled upstream (e.g. the PayPal experience
                context); branches other than ``kind`` are stripped
            hosted_card_fields: Card details are collected by hosted fields

        Returns:
            PaymentSourceDescriptor whose payload has at most one top-level key
        """
        sources: dict[str, dict[str, Any]] = {
            key: dict(value) for key, value in copy.deepcopy(dict(base or {})).items()
        }
        branch = sources.setdefault(kind.value, {})
        mode = VaultingMode.NONE
        customer_id = vault_customer_id

        if return_buyer_token_id:
            if kind is not PaymentMethodKind.PAYPAL:
                # Only the wallet keeps its experience context alongside a vault id
                branch.clear()
            branch["vault_id"] = return_buyer_token_id
            if is_merchant_initiated and supports_stored_credential(kind):
                branch["stored_credential"] = dict(MIT_STORED_CREDENTIAL)
            mode = VaultingMode.RETURN_BUYER
        elif vault_intent and vault_customer_id:
            if kind is PaymentMethodKind.CARD and hosted_card_fields:
                mode = VaultingMode.CLIENT_TOKEN
            else:
                branch["attributes"] = vault_attributes(kind, vault_customer_id)
                mode = VaultingMode.SAVE_DURING_PURCHASE
        else:
            customer_id = None

        stripped = [key for key in sources if key != kind.value]
        if stripped:
            logger.debug("payment_source_branches_stripped", kind=kind.value, stripped=stripped)

        payload = {kind.value: branch} if branch else None

        return PaymentSourceDescriptor(
            kind=kind,
            payload=payload,
            vaulting_mode=mode,
            customer_id=customer_id,
        )
