"""Per-tenant PayPal configuration lookup.

Configuration is written by the merchant admin UI, which lives outside
this service; here it is only read.
"""

from decimal import Decimal
from typing import Protocol

import asyncpg
import structlog

from paypal_orchestrator.config import PayPalSettings
from paypal_orchestrator.infrastructure.database import Database
from paypal_orchestrator.models.tenant import TenantConfig
from paypal_orchestrator.paypal.environment import parse_environment

logger = structlog.get_logger()

DEFAULT_TENANT_ID = "default"


class TenantConfigStore(Protocol):
    """Access to tenant configuration."""

    async def get(self, tenant_id: str | None) -> TenantConfig | None:
        ...

    async def deactivate(self, merchant_id: str) -> list[str]:
        """Stop serving every tenant connected to ``merchant_id``; returns their ids."""
        ...


class SettingsTenantConfigStore:
    """Single-tenant store backed by environment settings.

    Every tenant id resolves to the same credentials; ``None`` resolves to
    ``DEFAULT_TENANT_ID``.
    """

    def __init__(self, paypal_settings: PayPalSettings) -> None:
        self.paypal_settings = paypal_settings

    async def get(self, tenant_id: str | None) -> TenantConfig | None:
        s = self.paypal_settings
        if not s.client_id or not s.client_secret:
            return None
        return TenantConfig(
            tenant_id=tenant_id or DEFAULT_TENANT_ID,
            client_id=s.client_id,
            client_secret=s.client_secret,
            environment=parse_environment(s.environment),
            merchant_id=s.merchant_id,
            merchant_email=s.merchant_email,
            webhook_id=s.webhook_id,
            partner_fee_percent=s.partner_fee_percent,
            soft_descriptor=s.soft_descriptor,
            service_auth_secret=s.service_auth_secret,
        )

    async def deactivate(self, merchant_id: str) -> list[str]:
        # Environment credentials cannot be switched off at runtime
        if merchant_id == self.paypal_settings.merchant_id:
            logger.warning("settings_tenant_not_deactivatable", merchant_id=merchant_id)
        return []


class InMemoryTenantConfigStore:
    """Store over a fixed set of configurations."""

    def __init__(
        self,
        configs: list[TenantConfig] | None = None,
        default: TenantConfig | None = None,
    ) -> None:
        self._configs = {config.tenant_id: config for config in configs or []}
        self._default = default

    def put(self, config: TenantConfig) -> None:
        self._configs[config.tenant_id] = config

    async def get(self, tenant_id: str | None) -> TenantConfig | None:
        if tenant_id is None:
            return self._default
        return self._configs.get(tenant_id)

    async def deactivate(self, merchant_id: str) -> list[str]:
        removed = [tid for tid, config in self._configs.items() if config.merchant_id == merchant_id]
        for tenant_id in removed:
            del self._configs[tenant_id]
        if self._default is not None and self._default.merchant_id == merchant_id:
            if self._default.tenant_id not in removed:
                removed.append(self._default.tenant_id)
            self._default = None
        return removed


def _row_to_config(row: asyncpg.Record) -> TenantConfig:
    fee = row["partner_fee_percent"]
    return TenantConfig(
        tenant_id=row["tenant_id"],
        client_id=row["client_id"],
        client_secret=row["client_secret"],
        environment=parse_environment(row["environment"]),
        merchant_id=row["merchant_id"],
        merchant_email=row["merchant_email"],
        webhook_id=row["webhook_id"],
        partner_fee_percent=Decimal(fee) if fee is not None else None,
        soft_descriptor=row["soft_descriptor"],
        platform_app_token=row["platform_app_token"],
        service_auth_secret=row["service_auth_secret"],
    )


class PostgresTenantConfigStore:
    """asyncpg-backed store over ``paypal_tenant_configs``.

    Requests without a tenant id (platform-level webhooks) fall back to the
    settings-backed store.
    """

    def __init__(self, database: Database, fallback: TenantConfigStore | None = None) -> None:
        self.database = database
        self.fallback = fallback

    async def get(self, tenant_id: str | None) -> TenantConfig | None:
        if tenant_id is None:
            return await self.fallback.get(None) if self.fallback else None

        async with self.database.connection() as conn:
            row = await conn.fetchrow(
                """
                SELECT tenant_id, client_id, client_secret, environment, merchant_id,
                       merchant_email, webhook_id, partner_fee_percent, soft_descriptor,
                       platform_app_token, service_auth_secret
                FROM paypal_tenant_configs
                WHERE tenant_id = $1 AND is_active
                """,
                tenant_id,
            )

        if row is None:
            logger.info("tenant_config_not_found", tenant_id=tenant_id)
            return None
        return _row_to_config(row)

    async def deactivate(self, merchant_id: str) -> list[str]:
        async with self.database.connection() as conn:
            rows = await conn.fetch(
                """
                UPDATE paypal_tenant_configs
                SET is_active = false, updated_at = now()
                WHERE merchant_id = $1 AND is_active
                RETURNING tenant_id
                """,
                merchant_id,
            )

        tenant_ids = [row["tenant_id"] for row in rows]
        logger.info("tenant_configs_deactivated", merchant_id=merchant_id, tenant_ids=tenant_ids)
        return tenant_ids
