"""Order correlation metadata carried in PayPal's ``custom_id``.

Webhook handlers use it to find the originating platform transaction.
PayPal limits ``custom_id`` to 127 characters.
"""

import json
from typing import Any

MAX_CUSTOM_ID_LENGTH = 127

# Dropped from the end when the encoded value is too long
METADATA_KEYS = ("transaction_id", "source_id", "source_type", "channel_id")


def build_custom_id(
    transaction_id: str,
    source_id: str | None = None,
    source_type: str | None = None,
    channel_id: str | None = None,
) -> str:
    values = {
        "transaction_id": transaction_id,
        "source_id": source_id,
        "source_type": source_type,
        "channel_id": channel_id,
    }
    metadata = {key: values[key] for key in METADATA_KEYS if values[key]}

    while True:
        encoded = json.dumps(metadata, separators=(",", ":"))
        if len(encoded) <= MAX_CUSTOM_ID_LENGTH or len(metadata) == 1:
            break
        metadata.popitem()

    if len(encoded) > MAX_CUSTOM_ID_LENGTH:
        # Only transaction_id is left and it is oversized on its own
        overflow = len(encoded) - MAX_CUSTOM_ID_LENGTH
        metadata = {"transaction_id": transaction_id[: len(transaction_id) - overflow]}
        encoded = json.dumps(metadata, separators=(",", ":"))
    return encoded


def parse_custom_id(value: Any) -> dict[str, Any] | None:
    """Decode a ``custom_id``; None when absent or not ours."""
    if not value or not isinstance(value, str):
        return None
    try:
        metadata = json.loads(value)
    except ValueError:
        return None
    if not isinstance(metadata, dict) or "transaction_id" not in metadata:
        return None
    return metadata
