"""
Webhook signatures for outbound lender deliveries.

Lenders verify the X-RateUnlock-Signature header by recomputing an
HMAC-SHA256 of the raw request body with their shared signing key.
"""
import hashlib
import hmac

SIGNATURE_HEADER = "X-RateUnlock-Signature"
SIGNATURE_PREFIX = "sha256="


def sign_payload(secret: str, body: bytes) -> str:
    """Return the signature header value for a raw body: 'sha256=<hex>'."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def validate_hmac_sha256(
    secret: str,
    signature: str,
    body: bytes,
    header_prefix: str = SIGNATURE_PREFIX,
) -> bool:
    """
    Validate an HMAC-SHA256 webhook signature.
    Handles signatures with optional prefix (e.g., "sha256=...").
    Returns True if valid, False if invalid.
    """
    if not secret or not signature:
        return False

    sig = signature
    if sig.startswith(header_prefix):
        sig = sig[len(header_prefix):]

    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, sig.lower())
