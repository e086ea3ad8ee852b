"""HMAC-SHA256 verification for PayGate settlement callbacks.

The signature is the hex digest of the raw request body keyed with
PAYGATE_WEBHOOK_SECRET, sent as `X-PayGate-Signature`, optionally prefixed
with `sha256=`.
"""

import hashlib
import hmac

SIGNATURE_HEADER = "X-PayGate-Signature"


def compute_signature(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Constant-time check. No secret configured means nothing verifies."""
    if not secret or not signature:
        return False
    provided = signature.strip().removeprefix("sha256=")
    return hmac.compare_digest(provided, compute_signature(body, secret))
