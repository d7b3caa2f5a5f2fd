"""Custom exceptions for the PayPal Payment Orchestrator.

Processor-facing failures are returned as ``Err`` results (see
``models.errors``). Exceptions are reserved for local validation and
storage conflicts.
"""


class OrchestratorError(Exception):
    """Base exception for orchestrator errors."""

    pass


class ValidationError(OrchestratorError, ValueError):
    """
    Raised when an input is malformed (bad amount, bad currency, missing ids).

    This is a TERMINAL error. It is surfaced to the caller immediately and
    never retried.
    """

    def __init__(self, message: str, code: str = "INVALID_REQUEST") -> None:
        super().__init__(message)
        self.code = code


class VaultMappingAlreadyExists(OrchestratorError):
    """
    Raised by a vault customer repository when the (tenant, user) key exists.

    Callers treat this as success and re-read the existing mapping.
    """

    pass


class TenantNotConfigured(OrchestratorError):
    """
    Raised when no PayPal configuration exists for a tenant.

    This is a TERMINAL error for the request; the configuration must be
    fixed by the merchant.
    """

    pass
