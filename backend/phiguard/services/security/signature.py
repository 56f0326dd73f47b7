"""
Webhook signature verification.

GitHub signs each delivery with HMAC-SHA256 over the raw body and sends it as
``X-Hub-Signature-256: sha256=<hex>``. The comparison is constant-time on the
decoded digest bytes.
"""
import hashlib
import hmac
import logging
from typing import Optional

from phiguard.errors import AuthenticationError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, body: bytes) -> str:
    """Return the header value GitHub would send for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, signature: Optional[str], body: bytes) -> None:
    """
    Authenticate a webhook delivery.

    Raises:
        AuthenticationError: secret unset, header absent, prefix missing,
            hex invalid, or digest mismatch.
    """
    if not secret:
        raise AuthenticationError("Webhook secret is not configured")
    if not signature:
        raise AuthenticationError("Missing signature header")
    if not signature.startswith(SIGNATURE_PREFIX):
        raise AuthenticationError("Invalid signature format")

    try:
        remote = bytes.fromhex(signature[len(SIGNATURE_PREFIX):])
    except ValueError:
        raise AuthenticationError("Invalid signature hex")

    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    if not hmac.compare_digest(expected, remote):
        logger.warning("Webhook signature mismatch (%d byte body)", len(body))
        raise AuthenticationError("Invalid signature")
