"""Payment lifecycle: payment sources, vaulting and order orchestration."""

from paypal_orchestrator.payments.orders import OrderOrchestrator
from paypal_orchestrator.payments.payment_source import (
    PaymentSourceBuilder,
    PaymentSourceDescriptor,
)
from paypal_orchestrator.payments.vault_customers import VaultCustomerResolver
from paypal_orchestrator.payments.vaulting import VaultingService, VaultingState

__all__ = [
    "OrderOrchestrator",
    "PaymentSourceBuilder",
    "PaymentSourceDescriptor",
    "VaultCustomerResolver",
    "VaultingService",
    "VaultingState",
]
