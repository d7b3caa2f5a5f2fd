"""Order endpoints called server-to-server by the merchant platform.

- POST /v1/orders: Create a PayPal order for a platform transaction
- POST /v1/orders/{order_id}/capture: Capture an approved order
- POST /v1/orders/{order_id}/authorize: Authorize an approved order
- GET /v1/orders/{order_id}: Current order state at PayPal
- PATCH /v1/orders/{order_id}: Amend an order awaiting the buyer

Every call must carry the tenant's shared secret in ``X-Service-Auth``.
Payment failures are part of the normal flow and are answered with 200 and
``result=FAILED``; the platform records them on the transaction.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Depends

from paypal_orchestrator.api.auth import verify_service_authorization
from paypal_orchestrator.api.dependencies import ApiLimit, Container, IdempotencyKey, Tenant
from paypal_orchestrator.api.errors import http_error
from paypal_orchestrator.api.models import (
    CreateOrderRequestJSON,
    OrderResponseJSON,
    UpdateOrderRequestJSON,
)
from paypal_orchestrator.models.result import Err
from paypal_orchestrator.paypal.environment import dashboard_url

logger = structlog.get_logger()

router = APIRouter(
    prefix="/v1/orders",
    tags=["orders"],
    dependencies=[Depends(verify_service_authorization)],
)


@router.post("", response_model=OrderResponseJSON)
async def create_order(
    limit: ApiLimit,
    body: CreateOrderRequestJSON,
    tenant: Tenant,
    container: Container,
    idempotency_key: IdempotencyKey,
) -> OrderResponseJSON:
    """Create a PayPal order.

    Responses:
        200 OK: Order result (ACTION_REQUIRED, CAPTURED or FAILED)
        400 Bad Request: Malformed request
        401 Unauthorized: Missing X-Service-Auth
        403 Forbidden: Wrong shared secret for the tenant
        404 Not Found: Merchant has no PayPal configuration
        429 Too Many Requests: Rate limit exceeded
    """
    command = body.to_domain(idempotency_key=idempotency_key)
    result = await container.orders.create_order(tenant, command)
    return OrderResponseJSON.from_result(result, tenant.environment)


@router.post("/{order_id}/capture", response_model=OrderResponseJSON)
async def capture_order(
    limit: ApiLimit,
    order_id: str,
    tenant: Tenant,
    container: Container,
    idempotency_key: IdempotencyKey,
) -> OrderResponseJSON:
    result = await container.orders.capture_order(tenant, order_id, idempotency_key)
    return OrderResponseJSON.from_result(result, tenant.environment)


@router.post("/{order_id}/authorize", response_model=OrderResponseJSON)
async def authorize_order(
    limit: ApiLimit,
    order_id: str,
    tenant: Tenant,
    container: Container,
    idempotency_key: IdempotencyKey,
) -> OrderResponseJSON:
    result = await container.orders.authorize_order(tenant, order_id, idempotency_key)
    return OrderResponseJSON.from_result(result, tenant.environment)


@router.get("/{order_id}")
async def get_order(
    limit: ApiLimit,
    order_id: str,
    tenant: Tenant,
    container: Container,
) -> dict[str, Any]:
    """Order state as PayPal currently reports it.

    Responses:
        200 OK: Order id, status, intent, amount and correlation metadata
        404 Not Found: Merchant has no PayPal configuration
        422 Unprocessable Entity: PayPal rejected the lookup (unknown order)
        502 Bad Gateway: PayPal credentials rejected
        503 Service Unavailable: PayPal unreachable
    """
    result = await container.orders.get_order(tenant, order_id)
    if isinstance(result, Err):
        raise http_error(result.error)
    return {
        **result.value,
        "environment": tenant.environment.value,
        "dashboard_url": dashboard_url(tenant.environment, order_id),
    }


@router.patch("/{order_id}", response_model=OrderResponseJSON)
async def update_order(
    limit: ApiLimit,
    order_id: str,
    body: UpdateOrderRequestJSON,
    tenant: Tenant,
    container: Container,
) -> OrderResponseJSON:
    result = await container.orders.update_order(tenant, order_id, body.to_domain())
    return OrderResponseJSON.from_result(result, tenant.environment)
