"""Storefront vaulting endpoints.

Every vault route acts for the signed-in buyer resolved from the storefront
bearer token. A buyer can only see and delete payment tokens stored under
their own vault customer.
"""

import structlog
from fastapi import APIRouter, HTTPException, Response, status

from paypal_orchestrator.api.dependencies import (
    ApiLimit,
    AuthLimit,
    Container,
    IdempotencyKey,
    StorefrontUser,
    Tenant,
)
from paypal_orchestrator.api.errors import http_error
from paypal_orchestrator.api.models import (
    ClientTokenResponseJSON,
    IdTokenResponseJSON,
    PaymentTokenRequestJSON,
    PaymentTokenResponseJSON,
    SetupTokenRequestJSON,
    SetupTokenResponseJSON,
)
from paypal_orchestrator.models.payment_method import PaymentMethodKind
from paypal_orchestrator.models.result import Err

logger = structlog.get_logger()

router = APIRouter(prefix="/v1", tags=["vault"])


def _not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


@router.post(
    "/vault/setup-tokens",
    response_model=SetupTokenResponseJSON,
    status_code=status.HTTP_201_CREATED,
)
async def create_setup_token(
    limit: ApiLimit,
    body: SetupTokenRequestJSON,
    tenant: Tenant,
    user: StorefrontUser,
    container: Container,
    idempotency_key: IdempotencyKey,
) -> SetupTokenResponseJSON:
    """Start saving a payment method without a purchase.

    Responses:
        201 Created: Setup token, with the approval URL for wallet methods
        400 Bad Request: Payment method cannot be vaulted without a purchase
        401 Unauthorized: No signed-in buyer
    """
    kind = PaymentMethodKind.parse(body.payment_method_type)
    mapping = await container.vault_customers.get_or_create(tenant.tenant_id, user.id)

    result = await container.vaulting.create_setup_token(
        tenant,
        mapping.processor_customer_id,
        kind,
        verification_method=body.verification_method,
        return_url=body.return_url,
        cancel_url=body.cancel_url,
        description=body.description,
        request_id=idempotency_key,
    )
    if isinstance(result, Err):
        raise http_error(result.error)
    return SetupTokenResponseJSON.from_domain(result.value)


@router.post(
    "/vault/payment-tokens",
    response_model=PaymentTokenResponseJSON,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment_token(
    limit: ApiLimit,
    body: PaymentTokenRequestJSON,
    tenant: Tenant,
    user: StorefrontUser,
    container: Container,
    idempotency_key: IdempotencyKey,
) -> PaymentTokenResponseJSON:
    """Exchange an approved setup token for a durable payment token.

    Responses:
        201 Created: Payment token
        404 Not Found: Buyer has no vault customer, or the setup token is not theirs
        412 Precondition Failed: Setup token not approved or already used
    """
    mapping = await container.vault_customers.get(tenant.tenant_id, user.id)
    if mapping is None:
        raise _not_found("No saved payment methods for this buyer")

    setup = await container.vaulting.get_setup_token(tenant, body.setup_token_id)
    if isinstance(setup, Err):
        raise http_error(setup.error)
    # A setup token PayPal does not attribute to this buyer is treated as someone else's
    if setup.value.customer_id != mapping.processor_customer_id:
        logger.warning(
            "vault_setup_token_owner_mismatch",
            setup_token_id=body.setup_token_id,
            tenant_id=tenant.tenant_id,
        )
        raise _not_found("Setup token not found")

    result = await container.vaulting.mint_payment_token(
        tenant,
        body.setup_token_id,
        observed_status=setup.value.status,
        request_id=idempotency_key,
    )
    if isinstance(result, Err):
        raise http_error(result.error)
    return PaymentTokenResponseJSON.from_domain(result.value)


@router.get("/vault/payment-tokens", response_model=list[PaymentTokenResponseJSON])
async def list_payment_tokens(
    limit: ApiLimit,
    tenant: Tenant,
    user: StorefrontUser,
    container: Container,
) -> list[PaymentTokenResponseJSON]:
    mapping = await container.vault_customers.get(tenant.tenant_id, user.id)
    if mapping is None:
        return []

    result = await container.vaulting.list_tokens(tenant, mapping.processor_customer_id)
    if isinstance(result, Err):
        raise http_error(result.error)
    return [PaymentTokenResponseJSON.from_domain(token) for token in result.value]


@router.delete("/vault/payment-tokens/{token_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment_token(
    limit: ApiLimit,
    token_id: str,
    tenant: Tenant,
    user: StorefrontUser,
    container: Container,
) -> Response:
    """Delete one of the buyer's saved payment methods.

    Responses:
        204 No Content: Deleted
        404 Not Found: No such token for this buyer
    """
    mapping = await container.vault_customers.get(tenant.tenant_id, user.id)
    if mapping is None:
        raise _not_found("Payment token not found")

    owned = await container.vaulting.list_tokens(tenant, mapping.processor_customer_id)
    if isinstance(owned, Err):
        raise http_error(owned.error)
    if token_id not in {token.id for token in owned.value}:
        raise _not_found("Payment token not found")

    result = await container.vaulting.delete_token(tenant, token_id)
    if isinstance(result, Err):
        raise http_error(result.error)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/vault/id-token", response_model=IdTokenResponseJSON)
async def create_id_token(
    limit: AuthLimit,
    tenant: Tenant,
    user: StorefrontUser,
    container: Container,
) -> IdTokenResponseJSON:
    """User id token for the JS SDK, scoped to the buyer's vault customer.

    Lets the SDK show saved methods and vault new ones during checkout.
    """
    mapping = await container.vault_customers.get_or_create(tenant.tenant_id, user.id)
    result = await container.paypal.generate_id_token(
        tenant.credentials, target_customer_id=mapping.processor_customer_id
    )
    if isinstance(result, Err):
        raise http_error(result.error)
    return IdTokenResponseJSON(id_token=result.value, customer_id=mapping.processor_customer_id)


@router.post("/client-token", response_model=ClientTokenResponseJSON)
async def create_client_token(
    limit: ApiLimit,
    tenant: Tenant,
    container: Container,
) -> ClientTokenResponseJSON:
    """Client token for hosted card fields."""
    result = await container.orders.orders_api.generate_client_token(tenant.credentials)
    if isinstance(result, Err):
        raise http_error(result.error)
    return ClientTokenResponseJSON(client_token=result.value)
