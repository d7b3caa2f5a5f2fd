"""FastAPI application entry point for the PayPal Payment Orchestrator."""

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from paypal_orchestrator import __version__
from paypal_orchestrator.api.errors import register_exception_handlers
from paypal_orchestrator.api.routes import orders, vault, webhooks
from paypal_orchestrator.config import settings
from paypal_orchestrator.context import ServiceContainer
from paypal_orchestrator.logging_config import configure_logging

# Configure logging at module level
configure_logging(log_level=settings.log_level, format_as_json=settings.log_json)

logger = structlog.get_logger()


async def run_sweeper(container: ServiceContainer, interval_seconds: float) -> None:
    """Periodically evict expired rate-limit windows and ledger entries."""
    while True:
        await asyncio.sleep(interval_seconds)
        container.sweep()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager.

    Handles startup and shutdown:
    - Build the service container (unless one was injected)
    - Connect and verify the database when configured
    - Start the periodic sweeper
    - Clean up on shutdown
    """
    logger.info("starting_paypal_orchestrator", environment=settings.environment)

    owns_container = getattr(app.state, "container", None) is None
    if owns_container:
        app.state.container = ServiceContainer.build(settings)
    container: ServiceContainer = app.state.container

    try:
        await container.start()
    except Exception as e:
        logger.error("failed_to_initialize_database", error=str(e))
        raise

    sweeper = asyncio.create_task(
        run_sweeper(container, container.settings.rate_limit.sweep_interval_seconds)
    )
    logger.info("paypal_orchestrator_started")

    yield

    # Shutdown
    logger.info("shutting_down_paypal_orchestrator")
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass

    if owns_container:
        await container.close()
        app.state.container = None

    logger.info("paypal_orchestrator_shutdown_complete")


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        container: Pre-built service container; tests inject one wired to
            fakes. When omitted, the lifespan builds one from settings.
    """
    app = FastAPI(
        title="PayPal Payment Orchestrator",
        description="PayPal order, vaulting and webhook orchestration for a multi-tenant platform",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    register_exception_handlers(app)
    app.include_router(webhooks.router)
    app.include_router(orders.router)
    app.include_router(vault.router)

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next) -> Response:
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        )
        return await call_next(request)

    @app.get("/health")
    async def health_check(request: Request) -> Response:
        """Health check endpoint.

        Returns:
            200 OK if service is healthy
            503 Service Unavailable if unhealthy
        """
        current: ServiceContainer | None = request.app.state.container
        if current is None:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "service": settings.service_name, "error": "starting"},
            )

        service_name = current.settings.service_name
        if current.database is None:
            return JSONResponse(
                status_code=200,
                content={
                    "status": "healthy",
                    "service": service_name,
                    "environment": current.settings.environment,
                    "database": "disabled",
                },
            )

        try:
            await current.database.ping()
        except Exception as e:
            logger.error("health_check_failed", error=str(e))
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "service": service_name,
                    "error": str(e),
                },
            )
        return JSONResponse(
            status_code=200,
            content={
                "status": "healthy",
                "service": service_name,
                "environment": current.settings.environment,
                "database": "ok",
            },
        )

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "service": "PayPal Payment Orchestrator",
            "version": __version__,
            "status": "running",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "paypal_orchestrator.api.main:app",
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )
