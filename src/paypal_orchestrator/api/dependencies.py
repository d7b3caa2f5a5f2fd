"""FastAPI dependencies for tenancy, buyer identity and rate limiting.

This module provides reusable dependencies for the API routes including:
- Service container access
- Tenant resolution from the ``X-Platform-Api-Url`` header
- Storefront buyer resolution from the bearer token
- Per-entry-point rate limits
"""

from typing import Annotated

import structlog
from fastapi import Depends, Header, HTTPException, Request, Response, status

from paypal_orchestrator.clients.platform import PlatformUser
from paypal_orchestrator.context import ServiceContainer
from paypal_orchestrator.infrastructure.rate_limiter import FixedWindowRateLimiter, RateLimitDecision
from paypal_orchestrator.models.exceptions import TenantNotConfigured
from paypal_orchestrator.models.result import Err
from paypal_orchestrator.models.tenant import TenantConfig

logger = structlog.get_logger()

TENANT_HEADER = "X-Platform-Api-Url"


class RateLimitExceeded(Exception):
    """Raised by the limit dependencies; rendered as 429 by the app."""

    def __init__(self, decision: RateLimitDecision) -> None:
        super().__init__("Too many requests")
        self.decision = decision


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


Container = Annotated[ServiceContainer, Depends(get_container)]


def client_key(request: Request) -> str:
    """
    Identify the caller for rate limiting.

    Order: first ``x-forwarded-for`` entry, ``x-real-ip``, the socket peer,
    else ``unknown``.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _enforce(limiter: FixedWindowRateLimiter, request: Request, response: Response) -> RateLimitDecision:
    decision = limiter.hit(client_key(request))
    if not decision.allowed:
        raise RateLimitExceeded(decision)
    response.headers.update(decision.headers())
    return decision


async def webhook_rate_limit(
    request: Request, response: Response, container: Container
) -> RateLimitDecision:
    return _enforce(container.webhook_limiter, request, response)


async def api_rate_limit(
    request: Request, response: Response, container: Container
) -> RateLimitDecision:
    return _enforce(container.api_limiter, request, response)


async def auth_rate_limit(
    request: Request, response: Response, container: Container
) -> RateLimitDecision:
    return _enforce(container.auth_limiter, request, response)


WebhookLimit = Annotated[RateLimitDecision, Depends(webhook_rate_limit)]
ApiLimit = Annotated[RateLimitDecision, Depends(api_rate_limit)]
AuthLimit = Annotated[RateLimitDecision, Depends(auth_rate_limit)]


async def get_tenant_id(
    x_platform_api_url: Annotated[str | None, Header(alias=TENANT_HEADER)] = None,
) -> str:
    """Tenant id is the merchant platform's API URL.

    Raises:
        HTTPException: 400 if the header is missing
    """
    if not x_platform_api_url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing {TENANT_HEADER} header",
        )
    return x_platform_api_url


TenantId = Annotated[str, Depends(get_tenant_id)]


async def get_tenant(tenant_id: TenantId, container: Container) -> TenantConfig:
    """Load the tenant's PayPal configuration.

    Raises:
        TenantNotConfigured: The tenant has no PayPal configuration (404)
    """
    tenant = await container.config_store.get(tenant_id)
    if tenant is None:
        logger.warning("tenant_not_configured", tenant_id=tenant_id)
        raise TenantNotConfigured(tenant_id)
    return tenant


Tenant = Annotated[TenantConfig, Depends(get_tenant)]


async def get_storefront_user(
    tenant_id: TenantId,
    container: Container,
    authorization: Annotated[str | None, Header()] = None,
) -> PlatformUser:
    """Resolve the signed-in buyer behind the storefront bearer token.

    Raises:
        HTTPException: 401 if there is no signed-in buyer, 503 if the
            platform could not be reached
    """
    parts = (authorization or "").split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await container.platform.resolve_user(tenant_id, parts[1])
    if isinstance(result, Err):
        logger.error("storefront_user_resolution_failed", tenant_id=tenant_id, code=result.error.code)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not verify the buyer",
        )
    if result.value is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="A signed-in buyer is required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return result.value


StorefrontUser = Annotated[PlatformUser, Depends(get_storefront_user)]


async def get_idempotency_key(
    paypal_request_id: Annotated[str | None, Header(alias="PayPal-Request-Id")] = None,
    x_idempotency_key: Annotated[str | None, Header(alias="X-Idempotency-Key")] = None,
) -> str | None:
    """Idempotency key passed through to PayPal as ``PayPal-Request-Id``."""
    return paypal_request_id or x_idempotency_key


IdempotencyKey = Annotated[str | None, Depends(get_idempotency_key)]
