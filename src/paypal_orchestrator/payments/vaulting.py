"""
Vaulting state machine.

Vault-without-purchase spans two round trips with a buyer approval step
in between that happens at PayPal:

    NO_INTENT -> SETUP_REQUESTED -> SETUP_APPROVED -> TOKEN_MINTED

A return buyer starts directly at TOKEN_MINTED with a saved vault id.
Only the customer mapping is persisted locally; setup and payment tokens
live at PayPal and are observed, not stored.
"""

from enum import Enum
from typing import Any, assert_never

import structlog

from paypal_orchestrator.models.errors import ErrorKind, PaymentError
from paypal_orchestrator.models.payment_method import PaymentMethodKind
from paypal_orchestrator.models.result import Err, Ok, Result
from paypal_orchestrator.models.tenant import TenantConfig
from paypal_orchestrator.models.vault import PaymentToken, SetupToken, SetupTokenStatus
from paypal_orchestrator.paypal.vaulting_api import VaultingApi

logger = structlog.get_logger(__name__)

DEFAULT_CARD_VERIFICATION = "SCA_WHEN_REQUIRED"
SETUP_TOKEN_CONSUMED_MESSAGE = "Setup token is not approved or has already been used"


class VaultingState(str, Enum):
    """Local view of a vaulting flow."""

    NO_INTENT = "NO_INTENT"
    SETUP_REQUESTED = "SETUP_REQUESTED"
    SETUP_APPROVED = "SETUP_APPROVED"
    TOKEN_MINTED = "TOKEN_MINTED"


TRANSITIONS: dict[VaultingState, frozenset[VaultingState]] = {
    # TOKEN_MINTED directly from NO_INTENT is the return-buyer path
    VaultingState.NO_INTENT: frozenset({VaultingState.SETUP_REQUESTED, VaultingState.TOKEN_MINTED}),
    VaultingState.SETUP_REQUESTED: frozenset({VaultingState.SETUP_APPROVED, VaultingState.NO_INTENT}),
    VaultingState.SETUP_APPROVED: frozenset({VaultingState.TOKEN_MINTED}),
    VaultingState.TOKEN_MINTED: frozenset(),
}


def can_transition(current: VaultingState, target: VaultingState) -> bool:
    return target in TRANSITIONS[current]


def state_for_setup_status(status: SetupTokenStatus) -> VaultingState:
    if status is SetupTokenStatus.CREATED:
        return VaultingState.SETUP_REQUESTED
    elif status is SetupTokenStatus.APPROVED:
        return VaultingState.SETUP_APPROVED
    elif status is SetupTokenStatus.CANCELLED:
        return VaultingState.NO_INTENT
    else:
        assert_never(status)


def approval_url(body: dict[str, Any]) -> str | None:
    for link in body.get("links") or []:
        if link.get("rel") == "approve":
            return link.get("href")
    return None


def kind_from_payment_source(payment_source: dict[str, Any]) -> PaymentMethodKind:
    """Detect the method kind from a vault response's ``payment_source``."""
    for kind in PaymentMethodKind:
        if kind.value in payment_source:
            return kind
    return PaymentMethodKind.CARD


def display_details(kind: PaymentMethodKind, payment_source: dict[str, Any]) -> dict[str, Any]:
    """Safe-to-show details of a vaulted method."""
    source = payment_source.get(kind.value) or {}
    if kind is PaymentMethodKind.CARD:
        return {
            "brand": source.get("brand"),
            "last_digits": source.get("last_digits"),
            "expiry": source.get("expiry"),
        }
    elif kind is PaymentMethodKind.PAYPAL:
        name = source.get("name") or {}
        return {
            "email": source.get("email_address"),
            "name": " ".join(
                part for part in (name.get("given_name"), name.get("surname")) if part
            ) or None,
        }
    elif kind is PaymentMethodKind.VENMO:
        return {
            "email": source.get("email_address"),
            "user_name": source.get("user_name"),
        }
    elif kind is PaymentMethodKind.APPLE_PAY:
        card = source.get("card") or {}
        return {"brand": card.get("brand"), "last_digits": card.get("last_digits")}
    else:
        assert_never(kind)


def parse_payment_token(body: dict[str, Any], customer_id: str | None = None) -> PaymentToken:
    payment_source = body.get("payment_source") or {}
    kind = kind_from_payment_source(payment_source)
    return PaymentToken(
        id=body["id"],
        customer_id=(body.get("customer") or {}).get("id") or customer_id,
        payment_method_kind=kind,
        display_details=display_details(kind, payment_source),
    )


class VaultingService:
    """Drives the vault-without-purchase flow against PayPal."""

    def __init__(self, api: VaultingApi, brand_name: str | None = None) -> None:
        self.api = api
        self.brand_name = brand_name

    def setup_token_request(
        self,
        customer_id: str,
        kind: PaymentMethodKind,
        verification_method: str | None = None,
        return_url: str | None = None,
        cancel_url: str | None = None,
        description: str | None = None,
    ) -> dict[str, Any]:
        """Build the setup-token request body for one kind.

        Raises:
            ValueError: Kind cannot be vaulted without a purchase
        """
        experience_context: dict[str, Any] = {}
        if self.brand_name:
            experience_context["brand_name"] = self.brand_name

        if kind is PaymentMethodKind.CARD:
            if return_url:
                experience_context["return_url"] = return_url
            if cancel_url:
                experience_context["cancel_url"] = cancel_url
            source: dict[str, Any] = {
                "verification_method": verification_method or DEFAULT_CARD_VERIFICATION,
            }
            if experience_context:
                source["experience_context"] = experience_context
        elif kind is PaymentMethodKind.PAYPAL:
            if return_url:
                experience_context["return_url"] = return_url
            if cancel_url:
                experience_context["cancel_url"] = cancel_url
            experience_context["shipping_preference"] = "NO_SHIPPING"
            source = {
                "usage_type": "MERCHANT",
                "experience_context": experience_context,
            }
            if description:
                source["description"] = description
        elif kind is PaymentMethodKind.VENMO:
            # Venmo approval happens in the app; no redirect URLs
            experience_context["shipping_preference"] = "NO_SHIPPING"
            source = {
                "usage_type": "MERCHANT",
                "experience_context": experience_context,
            }
            if description:
                source["description"] = description
        elif kind is PaymentMethodKind.APPLE_PAY:
            raise ValueError("Apple Pay can only be vaulted during a purchase")
        else:
            assert_never(kind)

        return {"customer": {"id": customer_id}, "payment_source": {kind.value: source}}

    async def create_setup_token(
        self,
        tenant: TenantConfig,
        customer_id: str,
        kind: PaymentMethodKind,
        verification_method: str | None = None,
        return_url: str | None = None,
        cancel_url: str | None = None,
        description: str | None = None,
        request_id: str | None = None,
    ) -> Result[SetupToken]:
        """
        Request a setup token (NO_INTENT -> SETUP_REQUESTED).

        Returns:
            Ok(SetupToken) with the approval URL when PayPal provides one, or
            Err: VALIDATION for unsupported kinds, AUTHENTICATION for bad
            credentials, PROCESSOR_REJECTED for other 4xx
        """
        try:
            body = self.setup_token_request(
                customer_id, kind, verification_method, return_url, cancel_url, description
            )
        except ValueError as e:
            return Err(PaymentError.validation("UNSUPPORTED_PAYMENT_METHOD", str(e)))

        result = await self.api.create_setup_token(tenant.credentials, body, request_id=request_id)
        if isinstance(result, Err):
            logger.warning(
                "vault_setup_token_failed",
                kind=kind.value,
                code=result.error.code,
                debug_id=result.error.debug_id,
            )
            return result

        response = result.value
        token = SetupToken(
            id=response["id"],
            status=SetupTokenStatus.parse(response.get("status")),
            payment_method_kind=kind,
            customer_id=(response.get("customer") or {}).get("id") or customer_id,
            approval_url=approval_url(response),
        )
        logger.info(
            "vault_setup_token_created",
            setup_token_id=token.id,
            kind=kind.value,
            status=token.status.value,
            state=state_for_setup_status(token.status).value,
        )
        return Ok(token)

    async def get_setup_token(
        self, tenant: TenantConfig, setup_token_id: str
    ) -> Result[SetupToken]:
        """Observe the remote status of a setup token."""
        result = await self.api.get_setup_token(tenant.credentials, setup_token_id)
        if isinstance(result, Err):
            return result

        response = result.value
        return Ok(
            SetupToken(
                id=response.get("id", setup_token_id),
                status=SetupTokenStatus.parse(response.get("status")),
                payment_method_kind=kind_from_payment_source(response.get("payment_source") or {}),
                customer_id=(response.get("customer") or {}).get("id"),
                approval_url=approval_url(response),
            )
        )

    async def mint_payment_token(
        self,
        tenant: TenantConfig,
        setup_token_id: str,
        observed_status: SetupTokenStatus | None = None,
        request_id: str | None = None,
    ) -> Result[PaymentToken]:
        """
        Exchange an approved setup token for a payment token
        (SETUP_APPROVED -> TOKEN_MINTED).

        A setup token that is not yet approved, or was already consumed, is
        answered by PayPal with 422 and surfaced as PRECONDITION_FAILED. It
        is never retried: the buyer has to approve again.
        """
        if observed_status is not None and not can_transition(
            state_for_setup_status(observed_status), VaultingState.TOKEN_MINTED
        ):
            logger.info(
                "vault_payment_token_precondition_failed",
                setup_token_id=setup_token_id,
                observed_status=observed_status.value,
            )
            return Err(
                PaymentError.precondition_failed("SETUP_TOKEN_NOT_APPROVED", SETUP_TOKEN_CONSUMED_MESSAGE)
            )

        result = await self.api.create_payment_token(
            tenant.credentials, setup_token_id, request_id=request_id
        )
        if isinstance(result, Err):
            error = result.error
            if error.status_code == 422 and error.kind == ErrorKind.PROCESSOR_REJECTED:
                logger.info(
                    "vault_payment_token_precondition_failed",
                    setup_token_id=setup_token_id,
                    code=error.code,
                    debug_id=error.debug_id,
                )
                return Err(
                    PaymentError.precondition_failed(
                        error.code, SETUP_TOKEN_CONSUMED_MESSAGE, status_code=422
                    )
                )
            return result

        token = parse_payment_token(result.value)
        logger.info(
            "vault_payment_token_created",
            payment_token_id=token.id,
            kind=token.payment_method_kind.value,
            customer_id=token.customer_id,
        )
        return Ok(token)

    async def list_tokens(
        self, tenant: TenantConfig, customer_id: str
    ) -> Result[list[PaymentToken]]:
        result = await self.api.list_payment_tokens(tenant.credentials, customer_id)
        if isinstance(result, Err):
            return result
        return Ok([parse_payment_token(item, customer_id) for item in result.value])

    async def delete_token(self, tenant: TenantConfig, token_id: str) -> Result[None]:
        result = await self.api.delete_payment_token(tenant.credentials, token_id)
        if isinstance(result, Ok):
            logger.info("vault_payment_token_deleted", payment_token_id=token_id)
        return result
