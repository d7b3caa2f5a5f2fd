"""Vault customer resolution."""

import structlog

from paypal_orchestrator.infrastructure.vault_repository import VaultCustomerRepository
from paypal_orchestrator.models.exceptions import ValidationError, VaultMappingAlreadyExists
from paypal_orchestrator.models.vault import VaultCustomerMapping

logger = structlog.get_logger(__name__)


class VaultCustomerResolver:
    """
    Maps a platform buyer to a PayPal vault customer id.

    The platform user id doubles as the PayPal customer id. This ties the
    two identity namespaces together; the mapping row stores both so they
    can diverge without a schema change. Mappings are created lazily on
    first vaulting use and never change afterwards.
    """

    def __init__(self, repository: VaultCustomerRepository) -> None:
        self.repository = repository

    @staticmethod
    def _validate(tenant_id: str, platform_user_id: str) -> None:
        if not tenant_id:
            raise ValidationError("tenant_id is required", code="MISSING_TENANT")
        if not platform_user_id:
            raise ValidationError("platform_user_id is required", code="VAULTING_REQUIRES_BUYER")

    async def get(self, tenant_id: str, platform_user_id: str) -> VaultCustomerMapping | None:
        self._validate(tenant_id, platform_user_id)
        return await self.repository.get(tenant_id, platform_user_id)

    async def get_or_create(self, tenant_id: str, platform_user_id: str) -> VaultCustomerMapping:
        """
        Return the mapping for a buyer, creating it on first use.

        Safe under concurrent calls for the same buyer: the repository
        enforces uniqueness and a losing creator re-reads the winner's row.

        Raises:
            ValidationError: Missing tenant or user id
        """
        self._validate(tenant_id, platform_user_id)

        existing = await self.repository.get(tenant_id, platform_user_id)
        if existing is not None:
            return existing

        mapping = VaultCustomerMapping(
            tenant_id=tenant_id,
            platform_user_id=platform_user_id,
            processor_customer_id=platform_user_id,
        )
        try:
            created = await self.repository.create(mapping)
        except VaultMappingAlreadyExists:
            logger.info(
                "vault_customer_created_concurrently",
                tenant_id=tenant_id,
                platform_user_id=platform_user_id,
            )
            existing = await self.repository.get(tenant_id, platform_user_id)
            if existing is None:
                # Unique violation but no row: the conflicting insert was rolled back
                raise
            return existing

        logger.info(
            "vault_customer_created",
            tenant_id=tenant_id,
            platform_user_id=platform_user_id,
            processor_customer_id=created.processor_customer_id,
        )
        return created
