"""
Webhook signature verification.

Webex signs the raw request body with HMAC-SHA1 using the secret given when
the webhook was created, hex-encoded in the X-Spark-Signature header.

Verification is opt-in: with no secret configured every request passes.
Accounts exposed on a public URL should set a secret.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional

SIGNATURE_HEADER = "x-spark-signature"


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha1).hexdigest()


def verify_signature(
    raw_body: bytes, signature: Optional[str], secret: Optional[str]
) -> bool:
    """
    Return True when `signature` matches the HMAC of `raw_body`.

    A missing secret always passes. A missing signature, or one of a
    different length, is a mismatch rather than an error.
    """
    if not secret:
        return True
    if not signature:
        return False
    expected = compute_signature(raw_body, secret)
    # compare_digest on bytes: non-ASCII str input would raise TypeError
    return hmac.compare_digest(
        signature.strip().lower().encode("utf-8"), expected.encode("ascii")
    )
