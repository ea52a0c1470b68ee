"""
WhatsApp Signature Verification

SECURITY BOUNDARY - Verify Meta HMAC signature and the subscription handshake.
Runs on the raw request bytes, before any decoding.
"""

import hashlib
import hmac
import logging
from typing import Mapping

from .errors import (
    InvalidSignatureError,
    SignatureNotFoundError,
    SignatureVerificationError,
    SubscriptionVerificationError,
)

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def _digest(payload: bytes, app_secret: str) -> str:
    return hmac.new(
        key=app_secret.encode("utf-8"),
        msg=payload,
        digestmod=hashlib.sha256,
    ).hexdigest()


def sign_payload(payload: bytes, app_secret: str) -> str:
    """Header value Meta would send for this payload: sha256=<hex>."""
    return SIGNATURE_PREFIX + _digest(payload, app_secret)


def validate_signature(payload: bytes, signature: str, app_secret: str) -> bool:
    """
    Check a hex HMAC-SHA256 signature of payload keyed by app_secret.

    Args:
        payload: Raw request body bytes
        signature: Hex digest, already stripped of the sha256= prefix
        app_secret: Meta app secret

    Returns:
        True when the signature matches. False on mismatch or empty input.
    """

    if not payload or not signature or not app_secret:
        return False

    # Compare (constant-time to prevent timing attacks)
    return hmac.compare_digest(
        _digest(payload, app_secret).encode("ascii"),
        signature.strip().lower().encode("utf-8"),
    )


def extract_signature_from_header(headers: Mapping[str, str]) -> str:
    """
    Return the hex digest from the X-Hub-Signature-256 header.

    Raises:
        SignatureNotFoundError: Header missing or not prefixed with sha256=
    """

    value = headers.get(SIGNATURE_HEADER) or headers.get(SIGNATURE_HEADER.lower())
    if not value or not value.startswith(SIGNATURE_PREFIX):
        raise SignatureNotFoundError()

    return value[len(SIGNATURE_PREFIX):]


def validate_payload_signature(
    headers: Mapping[str, str],
    payload: bytes,
    app_secret: str,
) -> None:
    """
    Verify the request signature header against the raw payload.

    Raises:
        SignatureVerificationError: Header missing or digest mismatch
            (the reason is chained as __cause__)
    """

    try:
        signature = extract_signature_from_header(headers)
    except SignatureNotFoundError as e:
        raise SignatureVerificationError() from e

    if not validate_signature(payload, signature, app_secret):
        raise SignatureVerificationError() from InvalidSignatureError()


# ============================================================================
# WEBHOOK CHALLENGE (Setup only)
# ============================================================================

def verify_subscription(
    mode: str,
    challenge: str,
    token: str,
    expected_token: str,
) -> str:
    """
    Verify webhook subscription challenge from WhatsApp.

    WhatsApp calls GET <webhook path> with:
    - hub.mode=subscribe
    - hub.challenge=random_string
    - hub.verify_token=configured_token

    Returns:
        The challenge string to echo back

    Raises:
        SubscriptionVerificationError: Wrong mode, empty or wrong token
    """

    if mode != "subscribe":
        raise SubscriptionVerificationError(f"invalid hub.mode: {mode!r}")

    if not expected_token or not hmac.compare_digest(
        (token or "").encode("utf-8"), expected_token.encode("utf-8")
    ):
        raise SubscriptionVerificationError("invalid hub.verify_token")

    return challenge
