"""Service authentication for the server-to-server order endpoints.

The merchant platform proves it is the caller by sending the tenant's
shared secret in ``X-Service-Auth``. Storefront buyers never hold that
secret, so they cannot create, read or amend orders directly even when
they know an order id.
"""

import hmac
from typing import Annotated

import structlog
from fastapi import Depends, Header, HTTPException, status

from paypal_orchestrator.api.dependencies import Tenant

logger = structlog.get_logger()

SERVICE_AUTH_HEADER = "X-Service-Auth"


async def verify_service_authorization(
    tenant: Tenant,
    x_service_auth: Annotated[str | None, Header(alias=SERVICE_AUTH_HEADER)] = None,
) -> str:
    """Verify that the caller holds the tenant's shared secret.

    Returns:
        The authenticated tenant id

    Raises:
        HTTPException: 401 if the header is missing, 403 if it does not match
            or the tenant has no secret configured
    """
    if not x_service_auth:
        logger.warning("service_auth_missing", tenant_id=tenant.tenant_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"{SERVICE_AUTH_HEADER} header is required",
        )

    if not tenant.service_auth_secret:
        logger.error("service_auth_not_configured", tenant_id=tenant.tenant_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Caller is not authorized for this tenant",
        )

    if not hmac.compare_digest(x_service_auth.encode(), tenant.service_auth_secret.encode()):
        logger.warning("service_auth_rejected", tenant_id=tenant.tenant_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Caller is not authorized for this tenant",
        )

    return tenant.tenant_id


ServiceAuth = Annotated[str, Depends(verify_service_authorization)]
