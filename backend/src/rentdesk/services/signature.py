"""HMAC-SHA256 signature verification for gateway notifications.

The digest is computed over the exact bytes received. Re-serializing the
decoded JSON (key order, whitespace, escaping) would change the digest and
reject valid notifications.
"""
import hashlib
import hmac


def compute_signature(raw_payload: bytes, secret: str) -> str:
    """
    Compute the hex HMAC-SHA256 digest of a payload.

    Args:
        raw_payload: Body bytes exactly as sent
        secret: Shared webhook secret

    Returns:
        Lowercase hex digest
    """
    return hmac.new(secret.encode("utf-8"), raw_payload, hashlib.sha256).hexdigest()


def verify_signature(raw_payload: bytes, supplied_signature: str | None, secret: str | None) -> bool:
    """
    Check a supplied signature against the payload.

    Returns False, not an error, when either the signature or the secret is
    missing; callers distinguish "absent" from "mismatch" by looking at the
    header themselves.

    Args:
        raw_payload: Body bytes exactly as received
        supplied_signature: Hex digest from the request header
        secret: Shared webhook secret from the active configuration

    Returns:
        True if the signature matches
    """
    if not supplied_signature or not secret:
        return False

    expected = compute_signature(raw_payload, secret)
    return hmac.compare_digest(expected, supplied_signature.strip().lower())
