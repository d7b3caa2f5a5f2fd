"""Vault customer mapping persistence.

The mapping table has a unique key on (tenant_id, platform_user_id).
``create`` never overwrites: a conflicting insert raises
``VaultMappingAlreadyExists`` and the caller re-reads.
"""

import asyncio
from datetime import datetime, timezone
from typing import Protocol

import asyncpg
import structlog

from paypal_orchestrator.infrastructure.database import Database
from paypal_orchestrator.models.exceptions import VaultMappingAlreadyExists
from paypal_orchestrator.models.vault import VaultCustomerMapping

logger = structlog.get_logger()


class VaultCustomerRepository(Protocol):
    """Storage for vault customer mappings."""

    async def get(self, tenant_id: str, platform_user_id: str) -> VaultCustomerMapping | None:
        ...

    async def get_by_customer_id(
        self, tenant_id: str, processor_customer_id: str
    ) -> VaultCustomerMapping | None:
        ...

    async def create(self, mapping: VaultCustomerMapping) -> VaultCustomerMapping:
        ...

    async def delete(self, tenant_id: str, platform_user_id: str) -> bool:
        ...


class InMemoryVaultCustomerRepository:
    """Process-local repository for development and tests."""

    def __init__(self) -> None:
        self._mappings: dict[tuple[str, str], VaultCustomerMapping] = {}

    async def get(self, tenant_id: str, platform_user_id: str) -> VaultCustomerMapping | None:
        # Yield like a real round trip so concurrent callers interleave
        await asyncio.sleep(0)
        return self._mappings.get((tenant_id, platform_user_id))

    async def get_by_customer_id(
        self, tenant_id: str, processor_customer_id: str
    ) -> VaultCustomerMapping | None:
        await asyncio.sleep(0)
        for (mapped_tenant, _), mapping in self._mappings.items():
            if mapped_tenant == tenant_id and mapping.processor_customer_id == processor_customer_id:
                return mapping
        return None

    async def create(self, mapping: VaultCustomerMapping) -> VaultCustomerMapping:
        await asyncio.sleep(0)
        key = (mapping.tenant_id, mapping.platform_user_id)
        if key in self._mappings:
            raise VaultMappingAlreadyExists(f"Vault customer already exists for {key}")
        stored = VaultCustomerMapping(
            tenant_id=mapping.tenant_id,
            platform_user_id=mapping.platform_user_id,
            processor_customer_id=mapping.processor_customer_id,
            created_at=mapping.created_at or datetime.now(timezone.utc),
        )
        self._mappings[key] = stored
        return stored

    async def delete(self, tenant_id: str, platform_user_id: str) -> bool:
        await asyncio.sleep(0)
        return self._mappings.pop((tenant_id, platform_user_id), None) is not None


def _row_to_mapping(row: asyncpg.Record) -> VaultCustomerMapping:
    return VaultCustomerMapping(
        tenant_id=row["tenant_id"],
        platform_user_id=row["platform_user_id"],
        processor_customer_id=row["processor_customer_id"],
        created_at=row["created_at"],
    )


class PostgresVaultCustomerRepository:
    """asyncpg-backed repository over ``paypal_vault_customers``."""

    def __init__(self, database: Database) -> None:
        self.database = database

    async def get(self, tenant_id: str, platform_user_id: str) -> VaultCustomerMapping | None:
        async with self.database.connection() as conn:
            row = await conn.fetchrow(
                """
                SELECT tenant_id, platform_user_id, processor_customer_id, created_at
                FROM paypal_vault_customers
                WHERE tenant_id = $1 AND platform_user_id = $2
                """,
                tenant_id,
                platform_user_id,
            )
        return _row_to_mapping(row) if row else None

    async def get_by_customer_id(
        self, tenant_id: str, processor_customer_id: str
    ) -> VaultCustomerMapping | None:
        async with self.database.connection() as conn:
            row = await conn.fetchrow(
                """
                SELECT tenant_id, platform_user_id, processor_customer_id, created_at
                FROM paypal_vault_customers
                WHERE tenant_id = $1 AND processor_customer_id = $2
                """,
                tenant_id,
                processor_customer_id,
            )
        return _row_to_mapping(row) if row else None

    async def create(self, mapping: VaultCustomerMapping) -> VaultCustomerMapping:
        """Insert a mapping.

        Uses INSERT ... ON CONFLICT DO NOTHING so a concurrent creator
        loses without an error inside the transaction; RETURNING yields no
        row in that case.

        Raises:
            VaultMappingAlreadyExists: The (tenant, user) key already exists
        """
        async with self.database.connection() as conn:
            try:
                row = await conn.fetchrow(
                    """
                    INSERT INTO paypal_vault_customers
                        (tenant_id, platform_user_id, processor_customer_id)
                    VALUES ($1, $2, $3)
                    ON CONFLICT (tenant_id, platform_user_id) DO NOTHING
                    RETURNING tenant_id, platform_user_id, processor_customer_id, created_at
                    """,
                    mapping.tenant_id,
                    mapping.platform_user_id,
                    mapping.processor_customer_id,
                )
            except asyncpg.UniqueViolationError as e:
                # processor_customer_id is unique per tenant as well
                raise VaultMappingAlreadyExists(str(e)) from e

        if row is None:
            raise VaultMappingAlreadyExists(
                f"Vault customer already exists for ({mapping.tenant_id}, {mapping.platform_user_id})"
            )

        logger.info(
            "vault_customer_mapping_inserted",
            tenant_id=mapping.tenant_id,
            platform_user_id=mapping.platform_user_id,
        )
        return _row_to_mapping(row)

    async def delete(self, tenant_id: str, platform_user_id: str) -> bool:
        async with self.database.connection() as conn:
            status = await conn.execute(
                """
                DELETE FROM paypal_vault_customers
                WHERE tenant_id = $1 AND platform_user_id = $2
                """,
                tenant_id,
                platform_user_id,
            )
        # asyncpg returns the command tag, e.g. "DELETE 1"
        return status.endswith(" 1")
