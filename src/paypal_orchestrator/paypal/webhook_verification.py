"""Webhook signature verification against PayPal's verification API.

This is a fail-closed gate: anything other than an explicit
``verification_status == "SUCCESS"`` from PayPal yields ``Rejected``.
"""

import json
from typing import Mapping

import structlog

from paypal_orchestrator.models.errors import ErrorKind
from paypal_orchestrator.models.result import Err
from paypal_orchestrator.models.tenant import PayPalCredentials
from paypal_orchestrator.models.webhook import (
    Rejected,
    RejectionReason,
    Verified,
    VerificationResult,
    WebhookHeaders,
)
from paypal_orchestrator.paypal.client import PayPalClient

logger = structlog.get_logger(__name__)

VERIFY_PATH = "/v1/notifications/verify-webhook-signature"


def build_verification_payload(headers: WebhookHeaders, webhook_id: str, raw_body: str) -> str:
    """
    Serialize the verification request.

    The event is spliced in as received rather than re-serialized; PayPal
    checks the signature against the original bytes.
    """
    fields = {
        "auth_algo": headers.auth_algo,
        "cert_url": headers.cert_url,
        "transmission_id": headers.transmission_id,
        "transmission_sig": headers.transmission_sig,
        "transmission_time": headers.transmission_time,
        "webhook_id": webhook_id,
    }
    prefix = json.dumps(fields, separators=(",", ":"))[:-1]
    return f'{prefix},"webhook_event":{raw_body}}}'


class WebhookSignatureVerifier:
    """Verifies PayPal webhook signatures using tenant credentials."""

    def __init__(self, client: PayPalClient) -> None:
        self.client = client

    async def verify(
        self,
        headers: Mapping[str, str],
        raw_body: bytes | str,
        webhook_id: str,
        credentials: PayPalCredentials,
    ) -> VerificationResult:
        """
        Verify one delivery.

        Args:
            headers: Request headers (any case)
            raw_body: Request body exactly as received
            webhook_id: Webhook id registered with PayPal for this tenant
            credentials: Tenant credentials used to obtain an access token

        Returns:
            Verified, or Rejected with a reason. Never raises for transport
            failures.
        """
        missing = WebhookHeaders.missing(headers)
        if missing:
            return self._reject(RejectionReason.MISSING_HEADERS, ",".join(missing))

        signature = WebhookHeaders.extract(headers)
        assert signature is not None

        body = raw_body.decode("utf-8") if isinstance(raw_body, bytes) else raw_body
        payload = build_verification_payload(signature, webhook_id, body)

        result = await self.client.request(
            "POST",
            VERIFY_PATH,
            credentials,
            content=payload,
            on_behalf_of_merchant=False,
        )

        if isinstance(result, Err):
            error = result.error
            if error.kind == ErrorKind.AUTHENTICATION:
                reason = RejectionReason.AUTH_FAILED
            elif error.kind == ErrorKind.TRANSIENT_NETWORK:
                reason = RejectionReason.VERIFIER_UNAVAILABLE
            else:
                reason = RejectionReason.API_ERROR
            return self._reject(
                reason,
                f"{error.code} ({error.status_code})",
                transmission_id=signature.transmission_id,
            )

        status = result.value.get("verification_status")
        if status != "SUCCESS":
            return self._reject(
                RejectionReason.INVALID_SIGNATURE,
                str(status),
                transmission_id=signature.transmission_id,
            )

        logger.info("webhook_signature_verified", transmission_id=signature.transmission_id)
        return Verified(transmission_id=signature.transmission_id)

    @staticmethod
    def _reject(
        reason: RejectionReason, detail: str, transmission_id: str | None = None
    ) -> Rejected:
        # Possible forgery or replay; kept at warning level for alerting
        logger.warning(
            "webhook_signature_rejected",
            reason=reason.value,
            detail=detail,
            transmission_id=transmission_id,
        )
        return Rejected(reason=reason, detail=detail)
