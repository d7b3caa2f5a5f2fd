"""Translation of domain failures into HTTP responses."""

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from paypal_orchestrator.api.dependencies import RateLimitExceeded
from paypal_orchestrator.models.errors import ErrorKind, PaymentError
from paypal_orchestrator.models.exceptions import TenantNotConfigured, ValidationError

logger = structlog.get_logger()

HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.SIGNATURE_VERIFICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.PRECONDITION_FAILED: status.HTTP_412_PRECONDITION_FAILED,
    ErrorKind.PROCESSOR_REJECTED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.AUTHENTICATION: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.TRANSIENT_NETWORK: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_error(error: PaymentError) -> HTTPException:
    """
    HTTPException for a processor-facing failure.

    Only the stable code and message are exposed, never processor bodies.
    """
    return HTTPException(
        status_code=HTTP_STATUS_BY_KIND[error.kind],
        detail={"code": error.code, "message": error.message},
    )


async def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": {"code": exc.code, "message": str(exc)}},
    )


async def _tenant_not_configured_handler(request: Request, exc: TenantNotConfigured) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": "PayPal is not configured for this merchant"},
    )


async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    decision = exc.decision
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "Too many requests",
            "message": f"Rate limit exceeded. Try again in {decision.retry_after_seconds} seconds.",
            "retry_after": decision.retry_after_seconds,
        },
        headers=decision.headers(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(TenantNotConfigured, _tenant_not_configured_handler)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)
