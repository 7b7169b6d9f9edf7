"""Webhook signatures: hex HMAC-SHA256 of the raw request body."""

from __future__ import annotations

import hashlib
import hmac

from bazaar.errors import InvalidSignature


def sign(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, body: bytes, signature: str | None) -> None:
    """Raise InvalidSignature unless ``signature`` matches. An empty secret never matches."""
    if not secret or not signature:
        raise InvalidSignature()
    # Headers arrive latin-1 decoded and may carry any code point; compare bytes.
    given = signature.strip().encode("utf-8", "surrogatepass")
    if not hmac.compare_digest(sign(secret, body).encode("ascii"), given):
        raise InvalidSignature()


__all__ = ("sign", "verify_signature")
