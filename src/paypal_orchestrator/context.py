"""Service container.

Every collaborator is constructed here once and injected downward. No
module reaches for a global: routes receive the container through
``app.state``, tests build one with fakes.
"""

from dataclasses import dataclass, field, replace

import httpx
import structlog

from paypal_orchestrator.clients.platform import PlatformClient
from paypal_orchestrator.config import Settings
from paypal_orchestrator.infrastructure.config_store import (
    PostgresTenantConfigStore,
    SettingsTenantConfigStore,
    TenantConfigStore,
)
from paypal_orchestrator.infrastructure.database import Database
from paypal_orchestrator.infrastructure.rate_limiter import (
    API_LIMIT,
    AUTH_LIMIT,
    WEBHOOK_LIMIT,
    FixedWindowRateLimiter,
    RateLimitConfig,
)
from paypal_orchestrator.infrastructure.vault_repository import (
    InMemoryVaultCustomerRepository,
    PostgresVaultCustomerRepository,
    VaultCustomerRepository,
)
from paypal_orchestrator.payments.orders import OrderOrchestrator
from paypal_orchestrator.payments.payment_source import PaymentSourceBuilder
from paypal_orchestrator.payments.vault_customers import VaultCustomerResolver
from paypal_orchestrator.payments.vaulting import VaultingService
from paypal_orchestrator.paypal.client import PayPalClient
from paypal_orchestrator.paypal.orders_api import OrdersApi
from paypal_orchestrator.paypal.token_cache import InMemoryAccessTokenCache
from paypal_orchestrator.paypal.vaulting_api import VaultingApi
from paypal_orchestrator.paypal.webhook_verification import WebhookSignatureVerifier
from paypal_orchestrator.webhooks.handlers import PaymentEventHandlers, register_default_handlers
from paypal_orchestrator.webhooks.ledger import InMemoryWebhookLedger, WebhookLedger
from paypal_orchestrator.webhooks.router import WebhookEventRouter

logger = structlog.get_logger()


def _limit(preset: RateLimitConfig, max_requests: int, window_seconds: int) -> RateLimitConfig:
    return replace(preset, max_requests=max_requests, window_seconds=window_seconds)


@dataclass
class ServiceContainer:
    """Owns the process-wide collaborators and their teardown."""

    settings: Settings
    http_client: httpx.AsyncClient
    paypal: PayPalClient
    orders: OrderOrchestrator
    vaulting: VaultingService
    vault_customers: VaultCustomerResolver
    verifier: WebhookSignatureVerifier
    config_store: TenantConfigStore
    platform: PlatformClient
    ledger: WebhookLedger
    router: WebhookEventRouter
    webhook_limiter: FixedWindowRateLimiter
    api_limiter: FixedWindowRateLimiter
    auth_limiter: FixedWindowRateLimiter
    database: Database | None = None
    repository: VaultCustomerRepository = field(default_factory=InMemoryVaultCustomerRepository)

    @classmethod
    def build(
        cls,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        config_store: TenantConfigStore | None = None,
    ) -> "ServiceContainer":
        """
        Wire every collaborator from settings.

        Without ``database_url`` the vault-customer repository is in-memory
        and tenant configuration comes from the ``PAYPAL__*`` settings.

        Args:
            settings: Application settings
            http_client: Shared HTTP client (tests pass one over a mock transport)
            config_store: Tenant configuration store override
        """
        http_client = http_client or httpx.AsyncClient(timeout=settings.paypal.timeout_seconds)
        paypal_settings = settings.paypal

        database: Database | None = None
        repository: VaultCustomerRepository
        settings_store = SettingsTenantConfigStore(paypal_settings)
        if settings.database_url:
            database = Database(
                settings.database_url,
                min_size=settings.database_pool_min_size,
                max_size=settings.database_pool_max_size,
                application_name=settings.service_name,
            )
            repository = PostgresVaultCustomerRepository(database)
            config_store = config_store or PostgresTenantConfigStore(database, fallback=settings_store)
        else:
            repository = InMemoryVaultCustomerRepository()
            config_store = config_store or settings_store

        paypal = PayPalClient(
            http_client,
            InMemoryAccessTokenCache(
                refresh_margin_seconds=paypal_settings.token_refresh_margin_seconds
            ),
            bn_code=paypal_settings.bn_code,
            timeout_seconds=paypal_settings.timeout_seconds,
            retry_backoff_seconds=paypal_settings.retry_backoff_seconds,
        )
        vault_customers = VaultCustomerResolver(repository)
        orders = OrderOrchestrator(
            OrdersApi(paypal),
            PaymentSourceBuilder(),
            vault_customers,
            partner_merchant_id=paypal_settings.partner_merchant_id,
            brand_name=paypal_settings.brand_name,
            callback_base_url=paypal_settings.callback_base_url,
        )
        platform = PlatformClient(http_client, timeout_seconds=settings.platform.timeout_seconds)

        router = WebhookEventRouter()
        register_default_handlers(router, PaymentEventHandlers(platform, config_store))

        limits = settings.rate_limit
        return cls(
            settings=settings,
            http_client=http_client,
            paypal=paypal,
            orders=orders,
            vaulting=VaultingService(VaultingApi(paypal), brand_name=paypal_settings.brand_name),
            vault_customers=vault_customers,
            verifier=WebhookSignatureVerifier(paypal),
            config_store=config_store,
            platform=platform,
            ledger=InMemoryWebhookLedger(ttl_seconds=settings.webhook.replay_ttl_seconds),
            router=router,
            webhook_limiter=FixedWindowRateLimiter(
                _limit(WEBHOOK_LIMIT, limits.webhook_max_requests, limits.window_seconds)
            ),
            api_limiter=FixedWindowRateLimiter(
                _limit(API_LIMIT, limits.api_max_requests, limits.window_seconds)
            ),
            auth_limiter=FixedWindowRateLimiter(
                _limit(AUTH_LIMIT, limits.auth_max_requests, limits.window_seconds)
            ),
            database=database,
            repository=repository,
        )

    async def start(self) -> None:
        if self.database is not None:
            await self.database.connect()
            await self.database.ping()
            logger.info("database_connection_verified")

    def sweep(self) -> None:
        """Evict expired rate-limit windows and ledger entries."""
        for limiter in (self.webhook_limiter, self.api_limiter, self.auth_limiter):
            limiter.sweep()
        sweep_ledger = getattr(self.ledger, "sweep", None)
        if sweep_ledger is not None:
            sweep_ledger()

    async def close(self) -> None:
        await self.http_client.aclose()
        if self.database is not None:
            await self.database.close()
        logger.info("service_container_closed")
