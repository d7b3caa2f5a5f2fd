"""Webhook domain models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Union

TRANSMISSION_ID_HEADER = "paypal-transmission-id"
TRANSMISSION_TIME_HEADER = "paypal-transmission-time"
TRANSMISSION_SIG_HEADER = "paypal-transmission-sig"
CERT_URL_HEADER = "paypal-cert-url"
AUTH_ALGO_HEADER = "paypal-auth-algo"

SIGNATURE_HEADERS = (
    TRANSMISSION_ID_HEADER,
    TRANSMISSION_TIME_HEADER,
    TRANSMISSION_SIG_HEADER,
    CERT_URL_HEADER,
    AUTH_ALGO_HEADER,
)


@dataclass(frozen=True)
class WebhookHeaders:
    """The five PayPal signature headers."""

    transmission_id: str
    transmission_time: str
    transmission_sig: str
    cert_url: str
    auth_algo: str

    @classmethod
    def missing(cls, headers: Mapping[str, str]) -> list[str]:
        """Names of signature headers that are absent or empty."""
        lowered = {k.lower(): v for k, v in headers.items()}
        return [name for name in SIGNATURE_HEADERS if not lowered.get(name)]

    @classmethod
    def extract(cls, headers: Mapping[str, str]) -> "WebhookHeaders | None":
        """Return the headers, or None if any one of them is missing."""
        if cls.missing(headers):
            return None
        lowered = {k.lower(): v for k, v in headers.items()}
        return cls(
            transmission_id=lowered[TRANSMISSION_ID_HEADER],
            transmission_time=lowered[TRANSMISSION_TIME_HEADER],
            transmission_sig=lowered[TRANSMISSION_SIG_HEADER],
            cert_url=lowered[CERT_URL_HEADER],
            auth_algo=lowered[AUTH_ALGO_HEADER],
        )


@dataclass(frozen=True)
class WebhookEvent:
    """A verified PayPal event."""

    id: str
    event_type: str
    resource: dict[str, Any]
    create_time: str | None = None
    summary: str | None = None
    resource_type: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "WebhookEvent":
        return cls(
            id=str(payload.get("id") or ""),
            event_type=str(payload["event_type"]),
            resource=dict(payload["resource"]),
            create_time=payload.get("create_time"),
            summary=payload.get("summary"),
            resource_type=payload.get("resource_type"),
        )


@dataclass(frozen=True)
class WebhookContext:
    """Where a verified event came from."""

    tenant_id: str | None
    transmission_id: str
    extra: dict[str, Any] = field(default_factory=dict)


class RejectionReason(str, Enum):
    """Why a webhook failed verification."""

    MISSING_HEADERS = "MISSING_HEADERS"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    API_ERROR = "API_ERROR"
    AUTH_FAILED = "AUTH_FAILED"
    VERIFIER_UNAVAILABLE = "VERIFIER_UNAVAILABLE"

    @property
    def is_outage(self) -> bool:
        """Failures on our side of the trust boundary; the sender should retry."""
        return self in (RejectionReason.AUTH_FAILED, RejectionReason.VERIFIER_UNAVAILABLE)


@dataclass(frozen=True)
class Verified:
    """Signature accepted by PayPal."""

    transmission_id: str


@dataclass(frozen=True)
class Rejected:
    """Signature not accepted. The payload must not be processed."""

    reason: RejectionReason
    detail: str = ""


VerificationResult = Union[Verified, Rejected]


class RouteOutcome(str, Enum):
    """What the router did with an event. Every outcome is acknowledged."""

    HANDLED = "HANDLED"
    UNHANDLED = "UNHANDLED"
    HANDLER_FAILED = "HANDLER_FAILED"
