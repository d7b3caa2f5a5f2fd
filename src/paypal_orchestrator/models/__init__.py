"""Domain models for the PayPal Payment Orchestrator."""

from paypal_orchestrator.models.errors import ErrorKind, PaymentError
from paypal_orchestrator.models.exceptions import (
    OrchestratorError,
    TenantNotConfigured,
    ValidationError,
    VaultMappingAlreadyExists,
)
from paypal_orchestrator.models.money import Money, from_minor_units, to_processor_money
from paypal_orchestrator.models.order import (
    ActionRequired,
    Address,
    Captured,
    CheckoutLine,
    CheckoutSnapshot,
    CreateOrderCommand,
    Created,
    Failed,
    OrderAction,
    OrderIntent,
    OrderResult,
    VaultingMode,
    VaultingRequest,
    VaultingSummary,
)
from paypal_orchestrator.models.payment_method import PaymentMethodKind
from paypal_orchestrator.models.result import Err, Ok, Result
from paypal_orchestrator.models.tenant import PayPalCredentials, PayPalEnvironment, TenantConfig
from paypal_orchestrator.models.vault import (
    PaymentToken,
    SetupToken,
    SetupTokenStatus,
    VaultCustomerMapping,
)
from paypal_orchestrator.models.webhook import (
    Rejected,
    RejectionReason,
    RouteOutcome,
    Verified,
    VerificationResult,
    WebhookContext,
    WebhookEvent,
    WebhookHeaders,
)

__all__ = [
    "ActionRequired",
    "Address",
    "Captured",
    "CheckoutLine",
    "CheckoutSnapshot",
    "CreateOrderCommand",
    "Created",
    "Err",
    "ErrorKind",
    "Failed",
    "Money",
    "Ok",
    "OrchestratorError",
    "OrderAction",
    "OrderIntent",
    "OrderResult",
    "PaymentError",
    "PaymentMethodKind",
    "PaymentToken",
    "PayPalCredentials",
    "PayPalEnvironment",
    "Rejected",
    "RejectionReason",
    "Result",
    "RouteOutcome",
    "SetupToken",
    "SetupTokenStatus",
    "TenantConfig",
    "TenantNotConfigured",
    "ValidationError",
    "VaultCustomerMapping",
    "VaultMappingAlreadyExists",
    "VaultingMode",
    "VaultingRequest",
    "VaultingSummary",
    "Verified",
    "VerificationResult",
    "WebhookContext",
    "WebhookEvent",
    "WebhookHeaders",
    "from_minor_units",
    "to_processor_money",
]
