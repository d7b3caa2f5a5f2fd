"""PayPal-Auth-Assertion header for acting on behalf of a connected merchant."""

import base64
import json


def _b64(payload: dict[str, str]) -> str:
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def build_auth_assertion(client_id: str, merchant_id: str) -> str:
    """
    Build an unsigned JWT identifying the payee merchant.

    Format: ``b64({"alg":"none"}) + "." + b64({"iss": client_id, "payer_id": merchant_id}) + "."``
    (empty signature segment).

    Args:
        client_id: Partner REST client id
        merchant_id: Connected merchant's PayPal payer id

    Returns:
        Header value for ``PayPal-Auth-Assertion``
    """
    if not client_id or not merchant_id:
        raise ValueError("client_id and merchant_id are required for an auth assertion")
    header = _b64({"alg": "none"})
    claims = _b64({"iss": client_id, "payer_id": merchant_id})
    return f"{header}.{claims}."
