"""Shared PayPal REST transport.

Every outbound PayPal call goes through ``PayPalClient.request`` which
handles OAuth, partner headers, bounded timeouts, the single transient
retry, and translation of failures into ``Err(PaymentError)``.
"""

import asyncio
import uuid
from typing import Any, Awaitable, Callable

import httpx
import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt, wait_fixed

from paypal_orchestrator.models.errors import ErrorKind, PaymentError
from paypal_orchestrator.models.result import Err, Ok, Result
from paypal_orchestrator.models.tenant import PayPalCredentials
from paypal_orchestrator.paypal.auth_assertion import build_auth_assertion
from paypal_orchestrator.paypal.environment import api_base_url
from paypal_orchestrator.paypal.errors import error_from_exception, error_from_response
from paypal_orchestrator.paypal.token_cache import AccessToken, AccessTokenCache

logger = structlog.get_logger(__name__)

TOKEN_PATH = "/v1/oauth2/token"
IDEMPOTENT_METHODS = frozenset({"GET", "DELETE"})


def _is_transient(result: Result[Any]) -> bool:
    return isinstance(result, Err) and result.error.retryable


class PayPalClient:
    """
    Client for the PayPal REST API.

    The httpx client is owned by the caller (the service container) so one
    connection pool is shared by all tenants. Tenant credentials are passed
    per call.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_cache: AccessTokenCache,
        bn_code: str | None = None,
        timeout_seconds: float = 10.0,
        retry_backoff_seconds: float = 0.25,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the PayPal client.

        Args:
            http_client: Shared async HTTP client
            token_cache: Access-token cache (single-flight per credentials)
            bn_code: Partner attribution code sent on order and vault calls
            timeout_seconds: Per-request timeout
            retry_backoff_seconds: Delay before the one retry of a transient failure
            sleep: Sleep function (injected in tests)
        """
        self.http_client = http_client
        self.token_cache = token_cache
        self.bn_code = bn_code
        self.timeout_seconds = timeout_seconds
        self.retry_backoff_seconds = retry_backoff_seconds
        self._sleep = sleep

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self.http_client.aclose()

    async def __aenter__(self) -> "PayPalClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @staticmethod
    def cache_key(credentials: PayPalCredentials) -> str:
        return f"{credentials.environment.value}:{credentials.client_id}"

    async def get_access_token(self, credentials: PayPalCredentials) -> Result[AccessToken]:
        """Return a cached access token, fetching a new one when needed."""
        return await self.token_cache.get_or_fetch(
            self.cache_key(credentials),
            lambda: self._fetch_access_token(credentials),
        )

    async def _fetch_access_token(self, credentials: PayPalCredentials) -> Result[AccessToken]:
        result = await self._token_grant(credentials, {"grant_type": "client_credentials"})
        if isinstance(result, Err):
            return result

        body = result.value
        access_token = body.get("access_token")
        if not access_token:
            return Err(
                PaymentError(
                    kind=ErrorKind.AUTHENTICATION,
                    code="MISSING_ACCESS_TOKEN",
                    message="PayPal token response did not contain an access token",
                )
            )
        logger.info(
            "paypal_access_token_acquired",
            environment=credentials.environment.value,
            expires_in=body.get("expires_in"),
        )
        return Ok(AccessToken(value=access_token, expires_in=int(body.get("expires_in") or 0)))

    async def generate_id_token(
        self,
        credentials: PayPalCredentials,
        target_customer_id: str | None = None,
    ) -> Result[str]:
        """
        Mint a user id token for the JS SDK.

        With ``target_customer_id`` the token lets the SDK vault for, and
        show saved methods of, that vault customer.
        """
        form = {"grant_type": "client_credentials", "response_type": "id_token"}
        if target_customer_id:
            form["target_customer_id"] = target_customer_id

        result = await self._token_grant(credentials, form)
        if isinstance(result, Err):
            return result

        id_token = result.value.get("id_token")
        if not id_token:
            return Err(
                PaymentError(
                    kind=ErrorKind.PROCESSOR_REJECTED,
                    code="MISSING_ID_TOKEN",
                    message="PayPal token response did not contain an id token",
                )
            )
        return Ok(id_token)

    async def _token_grant(
        self, credentials: PayPalCredentials, form: dict[str, str]
    ) -> Result[dict[str, Any]]:
        url = f"{api_base_url(credentials.environment)}{TOKEN_PATH}"
        # Token grants have no side effects, so they may be retried
        return await self._send_with_retry(
            "POST",
            url,
            retry_allowed=True,
            data=form,
            auth=(credentials.client_id, credentials.client_secret),
            headers={"Accept": "application/json"},
        )

    async def request(
        self,
        method: str,
        path: str,
        credentials: PayPalCredentials,
        *,
        json: Any = None,
        content: str | bytes | None = None,
        params: dict[str, Any] | None = None,
        request_id: str | None = None,
        on_behalf_of_merchant: bool = True,
    ) -> Result[dict[str, Any]]:
        """
        Send an authenticated request to PayPal.

        Args:
            method: HTTP method
            path: API path, e.g. ``/v2/checkout/orders``
            credentials: Tenant credentials
            json: JSON body
            content: Pre-serialized JSON body (used when bytes must be preserved)
            params: Query parameters
            request_id: Idempotency key sent as ``PayPal-Request-Id``
            on_behalf_of_merchant: Send partner attribution and auth assertion headers

        Returns:
            Ok(parsed JSON body, ``{}`` for empty responses) or Err(PaymentError)
        """
        token_result = await self.get_access_token(credentials)
        if isinstance(token_result, Err):
            return token_result

        headers = {
            "Authorization": f"Bearer {token_result.value.value}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Prefer": "return=representation",
        }
        if on_behalf_of_merchant:
            if self.bn_code:
                headers["PayPal-Partner-Attribution-Id"] = self.bn_code
            if credentials.merchant_id:
                headers["PayPal-Auth-Assertion"] = build_auth_assertion(
                    credentials.client_id, credentials.merchant_id
                )
        if request_id:
            headers["PayPal-Request-Id"] = request_id

        method = method.upper()
        result = await self._send_with_retry(
            method,
            f"{api_base_url(credentials.environment)}{path}",
            retry_allowed=method in IDEMPOTENT_METHODS or request_id is not None,
            headers=headers,
            json=json,
            content=content,
            params=params,
        )

        if isinstance(result, Err) and result.error.kind == ErrorKind.AUTHENTICATION:
            # Token revoked or expired early; the next call fetches a fresh one
            await self.token_cache.invalidate(self.cache_key(credentials))
        return result

    async def _send_with_retry(
        self,
        method: str,
        url: str,
        *,
        retry_allowed: bool,
        **kwargs: Any,
    ) -> Result[dict[str, Any]]:
        correlation_id = str(uuid.uuid4())

        def log_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.result().error
            logger.warning(
                "paypal_request_retrying",
                method=method,
                url=url,
                code=error.code,
                status_code=error.status_code,
                correlation_id=correlation_id,
            )

        # At most one retry, and only for transient failures
        retrying = AsyncRetrying(
            stop=stop_after_attempt(2 if retry_allowed else 1),
            wait=wait_fixed(self.retry_backoff_seconds),
            retry=retry_if_result(_is_transient),
            before_sleep=log_retry,
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
            sleep=self._sleep,
        )
        return await retrying(self._send, method, url, correlation_id, **kwargs)

    async def _send(
        self,
        method: str,
        url: str,
        correlation_id: str,
        **kwargs: Any,
    ) -> Result[dict[str, Any]]:
        logger.info("paypal_request", method=method, url=url, correlation_id=correlation_id)

        try:
            response = await self.http_client.request(
                method, url, timeout=self.timeout_seconds, **kwargs
            )
        except httpx.HTTPError as e:
            error = error_from_exception(e)
            logger.error(
                "paypal_request_transport_error",
                method=method,
                url=url,
                code=error.code,
                correlation_id=correlation_id,
            )
            return Err(error)

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return Ok({})
            try:
                body = response.json()
            except ValueError:
                logger.error(
                    "paypal_response_not_json",
                    status_code=response.status_code,
                    correlation_id=correlation_id,
                )
                return Err(
                    PaymentError.transient(
                        "INVALID_RESPONSE",
                        "PayPal returned a malformed response",
                        status_code=response.status_code,
                    )
                )
            return Ok(body if isinstance(body, dict) else {"items": body})

        error = error_from_response(response)
        log = logger.error if error.kind == ErrorKind.TRANSIENT_NETWORK else logger.warning
        log(
            "paypal_request_failed",
            method=method,
            url=url,
            status_code=error.status_code,
            code=error.code,
            debug_id=error.debug_id,
            correlation_id=correlation_id,
        )
        return Err(error)
