"""
Webhook signature helpers shared by the provider adapters.
"""

import hashlib
import hmac
import logging
from typing import Union

logger = logging.getLogger(__name__)

Payload = Union[str, bytes]


def _as_bytes(value: Payload) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


def compute_signature(payload: Payload, secret: str) -> str:
    """Hex-encoded HMAC-SHA256 of the raw payload."""
    return hmac.new(_as_bytes(secret), _as_bytes(payload), hashlib.sha256).hexdigest()


def validate_webhook_signature(payload: Payload, signature: str, secret: str) -> bool:
    """
    Check a provider webhook signature in constant time.

    Accepts the bare hex digest or the ``sha256=`` prefixed form, in any case.
    An unset secret never validates.
    """
    if not secret or not signature:
        return False

    signature = signature.strip().lower()
    if signature.startswith("sha256="):
        signature = signature[len("sha256="):]

    expected = compute_signature(payload, secret)
    return hmac.compare_digest(signature.encode("ascii", "replace"), expected.encode("ascii"))
