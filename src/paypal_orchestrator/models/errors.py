"""Internal error shape for processor-facing failures.

Processor-facing calls never raise for expected failures. They return an
``Err`` carrying a ``PaymentError`` so callers branch on ``kind`` instead of
catching transport exceptions.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Error taxonomy."""

    VALIDATION = "VALIDATION"
    AUTHENTICATION = "AUTHENTICATION"
    SIGNATURE_VERIFICATION = "SIGNATURE_VERIFICATION"
    PROCESSOR_REJECTED = "PROCESSOR_REJECTED"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    TRANSIENT_NETWORK = "TRANSIENT_NETWORK"


@dataclass(frozen=True)
class PaymentError:
    """
    A translated failure.

    ``code`` is a small stable identifier (e.g. ``INSTRUMENT_DECLINED``),
    never a raw processor body. ``debug_id`` is PayPal's correlation id and
    is safe to log.
    """

    kind: ErrorKind
    code: str
    message: str
    status_code: int | None = None
    debug_id: str | None = None

    def __post_init__(self) -> None:
        if not self.code:
            raise ValueError("code required for PaymentError")

    @property
    def retryable(self) -> bool:
        """Only transient network failures may be retried."""
        return self.kind == ErrorKind.TRANSIENT_NETWORK

    @classmethod
    def validation(cls, code: str, message: str) -> "PaymentError":
        return cls(kind=ErrorKind.VALIDATION, code=code, message=message)

    @classmethod
    def precondition_failed(
        cls, code: str, message: str, status_code: int | None = None
    ) -> "PaymentError":
        return cls(
            kind=ErrorKind.PRECONDITION_FAILED,
            code=code,
            message=message,
            status_code=status_code,
        )

    @classmethod
    def transient(cls, code: str, message: str, status_code: int | None = None) -> "PaymentError":
        return cls(
            kind=ErrorKind.TRANSIENT_NETWORK,
            code=code,
            message=message,
            status_code=status_code,
        )
