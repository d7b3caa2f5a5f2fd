"""Merchant platform GraphQL client.

Used for two things: resolving the signed-in storefront buyer behind a
bearer token, and reporting processor-side transaction events (refunds,
chargebacks) back to the platform.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx
import structlog

from paypal_orchestrator.models.errors import ErrorKind, PaymentError
from paypal_orchestrator.models.result import Err, Ok, Result

logger = structlog.get_logger(__name__)

ME_QUERY = """
query Me {
  me {
    id
    email
  }
}
"""

TRANSACTION_EVENT_REPORT_MUTATION = """
mutation TransactionEventReport(
  $id: ID!
  $type: TransactionEventTypeEnum!
  $amount: PositiveDecimal!
  $pspReference: String!
  $message: String
) {
  transactionEventReport(
    id: $id
    type: $type
    amount: $amount
    pspReference: $pspReference
    message: $message
  ) {
    alreadyProcessed
    errors {
      field
      code
      message
    }
  }
}
"""


@dataclass(frozen=True)
class PlatformUser:
    """Signed-in storefront buyer."""

    id: str
    email: str | None = None


class PlatformClient:
    """
    Client for the merchant platform's GraphQL API.

    The tenant id is the platform API URL, so every call takes it
    explicitly.
    """

    def __init__(self, http_client: httpx.AsyncClient, timeout_seconds: float = 5.0) -> None:
        self.http_client = http_client
        self.timeout_seconds = timeout_seconds

    async def _execute(
        self,
        api_url: str,
        token: str,
        query: str,
        variables: dict[str, Any] | None = None,
    ) -> Result[dict[str, Any]]:
        correlation_id = str(uuid.uuid4())
        try:
            response = await self.http_client.post(
                api_url,
                json={"query": query, "variables": variables or {}},
                headers={
                    "Authorization": f"Bearer {token}",
                    "X-Request-ID": correlation_id,
                },
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException:
            logger.error("platform_request_timeout", api_url=api_url, correlation_id=correlation_id)
            return Err(PaymentError.transient("TIMEOUT", "Platform request timed out"))
        except httpx.RequestError as e:
            logger.error(
                "platform_request_error",
                api_url=api_url,
                correlation_id=correlation_id,
                error=type(e).__name__,
            )
            return Err(PaymentError.transient("NETWORK_ERROR", "Platform request failed"))

        if response.status_code in (401, 403):
            return Err(
                PaymentError(
                    kind=ErrorKind.AUTHENTICATION,
                    code="PLATFORM_UNAUTHORIZED",
                    message="Platform rejected the token",
                    status_code=response.status_code,
                )
            )
        if response.status_code >= 500:
            logger.error(
                "platform_service_error",
                status_code=response.status_code,
                correlation_id=correlation_id,
            )
            return Err(
                PaymentError.transient(
                    "PLATFORM_UNAVAILABLE",
                    "Platform unavailable",
                    status_code=response.status_code,
                )
            )
        if not response.is_success:
            return Err(
                PaymentError(
                    kind=ErrorKind.PROCESSOR_REJECTED,
                    code="PLATFORM_REQUEST_REJECTED",
                    message=f"Platform returned HTTP {response.status_code}",
                    status_code=response.status_code,
                )
            )

        try:
            body = response.json()
        except ValueError:
            return Err(PaymentError.transient("INVALID_RESPONSE", "Platform returned malformed JSON"))
        return Ok(body if isinstance(body, dict) else {})

    async def resolve_user(self, api_url: str, token: str) -> Result[PlatformUser | None]:
        """
        Resolve the buyer behind a storefront token.

        Returns:
            Ok(PlatformUser), Ok(None) when the token belongs to no signed-in
            buyer, or Err for transport failures
        """
        result = await self._execute(api_url, token, ME_QUERY)
        if isinstance(result, Err):
            if result.error.kind == ErrorKind.AUTHENTICATION:
                return Ok(None)
            return result

        me = (result.value.get("data") or {}).get("me")
        if not me or not me.get("id"):
            return Ok(None)
        return Ok(PlatformUser(id=me["id"], email=me.get("email")))

    async def report_transaction_event(
        self,
        api_url: str,
        app_token: str,
        transaction_id: str,
        event_type: str,
        amount: Decimal,
        psp_reference: str,
        message: str | None = None,
    ) -> Result[bool]:
        """
        Report a transaction event to the platform.

        The platform deduplicates on (transaction, type, psp_reference), so
        re-reporting a redelivered webhook is harmless.

        Returns:
            Ok(already_processed) or Err
        """
        result = await self._execute(
            api_url,
            app_token,
            TRANSACTION_EVENT_REPORT_MUTATION,
            {
                "id": transaction_id,
                "type": event_type,
                "amount": str(amount),
                "pspReference": psp_reference,
                "message": message,
            },
        )
        if isinstance(result, Err):
            return result

        payload = (result.value.get("data") or {}).get("transactionEventReport") or {}
        errors = payload.get("errors") or result.value.get("errors") or []
        if errors:
            first = errors[0] if isinstance(errors[0], dict) else {}
            logger.warning(
                "platform_transaction_report_rejected",
                transaction_id=transaction_id,
                event_type=event_type,
                code=first.get("code"),
            )
            return Err(
                PaymentError(
                    kind=ErrorKind.PROCESSOR_REJECTED,
                    code=str(first.get("code") or "REPORT_REJECTED"),
                    message=str(first.get("message") or "Platform rejected the report"),
                )
            )

        already_processed = bool(payload.get("alreadyProcessed"))
        logger.info(
            "platform_transaction_reported",
            transaction_id=transaction_id,
            event_type=event_type,
            already_processed=already_processed,
        )
        return Ok(already_processed)
