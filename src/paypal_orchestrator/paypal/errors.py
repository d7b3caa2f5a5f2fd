"""Translation of PayPal HTTP failures into PaymentError."""

from typing import Any

import httpx

from paypal_orchestrator.models.errors import ErrorKind, PaymentError

MAX_MESSAGE_LENGTH = 200


def _parse_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _first_detail(body: dict[str, Any]) -> dict[str, Any]:
    details = body.get("details")
    if isinstance(details, list) and details and isinstance(details[0], dict):
        return details[0]
    return {}


def error_from_response(response: httpx.Response) -> PaymentError:
    """
    Map a non-2xx PayPal response to an internal error.

    The code is the first ``details[].issue`` when present, else the error
    ``name`` (or OAuth ``error``), else a status-derived default. Only a
    short message is kept; the body itself is discarded.
    """
    status = response.status_code
    body = _parse_body(response)
    detail = _first_detail(body)
    code = detail.get("issue") or body.get("name") or body.get("error")
    message = (
        detail.get("description")
        or body.get("message")
        or body.get("error_description")
        or f"PayPal returned HTTP {status}"
    )
    debug_id = body.get("debug_id") or response.headers.get("paypal-debug-id")

    if status == 401:
        kind = ErrorKind.AUTHENTICATION
        code = code or "AUTHENTICATION_FAILURE"
    elif status == 429 or status >= 500:
        kind = ErrorKind.TRANSIENT_NETWORK
        code = code or ("RATE_LIMIT_REACHED" if status == 429 else "INTERNAL_SERVICE_ERROR")
    elif status == 403:
        kind = ErrorKind.PROCESSOR_REJECTED
        code = code or "PERMISSION_DENIED"
    elif status == 404:
        kind = ErrorKind.PROCESSOR_REJECTED
        code = code or "RESOURCE_NOT_FOUND"
    elif status == 409:
        kind = ErrorKind.PROCESSOR_REJECTED
        code = code or "DUPLICATE_REQUEST"
    elif status == 422:
        kind = ErrorKind.PROCESSOR_REJECTED
        code = code or "UNPROCESSABLE_ENTITY"
    else:
        kind = ErrorKind.PROCESSOR_REJECTED
        code = code or "INVALID_REQUEST"

    return PaymentError(
        kind=kind,
        code=str(code).upper(),
        message=str(message)[:MAX_MESSAGE_LENGTH],
        status_code=status,
        debug_id=debug_id,
    )


def error_from_exception(exc: httpx.HTTPError) -> PaymentError:
    """Map a transport exception (timeout, connection reset) to a transient error."""
    if isinstance(exc, httpx.TimeoutException):
        return PaymentError.transient("TIMEOUT", "PayPal request timed out")
    return PaymentError.transient("NETWORK_ERROR", f"PayPal request failed: {type(exc).__name__}")
