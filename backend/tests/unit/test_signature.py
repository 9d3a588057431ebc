"""Unit tests for HMAC-SHA256 notification signatures."""
import hashlib
import hmac

import pytest

from rentdesk.services.signature import compute_signature, verify_signature

SECRET = "s3cr3t"
PAYLOADS = [
    b"{}",
    b'{"transactionRef":"TEST-1","amount":5000,"status":"SUCCESS"}',
    b'{ "amount" : 5000.00, "note": "caf\\u00e9" }',
    "{\"note\": \"café\"}".encode("utf-8"),
]


def test_compute_signature_matches_hmac_sha256() -> None:
    """The digest is the lowercase hex HMAC-SHA256 of the raw bytes."""
    payload = PAYLOADS[1]
    expected = hmac.new(SECRET.encode(), payload, hashlib.sha256).hexdigest()

    assert compute_signature(payload, SECRET) == expected


@pytest.mark.parametrize("payload", PAYLOADS)
def test_verify_accepts_own_signature(payload: bytes) -> None:
    """verify(P, hmac(P, S), S) holds for every payload."""
    assert verify_signature(payload, compute_signature(payload, SECRET), SECRET) is True


@pytest.mark.parametrize("payload", PAYLOADS)
def test_verify_rejects_every_single_bit_mutation(payload: bytes) -> None:
    """Flipping any bit of the signature's bytes breaks verification."""
    signature = compute_signature(payload, SECRET)
    raw = bytes.fromhex(signature)

    for index in range(len(raw)):
        for bit in range(8):
            mutated = bytearray(raw)
            mutated[index] ^= 1 << bit
            assert verify_signature(payload, bytes(mutated).hex(), SECRET) is False


def test_verify_is_sensitive_to_serialization() -> None:
    """Whitespace or key order changes produce a different digest."""
    signed = b'{"a":1,"b":2}'
    signature = compute_signature(signed, SECRET)

    assert verify_signature(b'{"a": 1, "b": 2}', signature, SECRET) is False
    assert verify_signature(b'{"b":2,"a":1}', signature, SECRET) is False


def test_verify_tolerates_uppercase_and_whitespace() -> None:
    """Header values are compared case-insensitively, ignoring surrounding whitespace."""
    signature = compute_signature(b"{}", SECRET)

    assert verify_signature(b"{}", f"  {signature.upper()} ", SECRET) is True


@pytest.mark.parametrize("supplied, secret", [(None, SECRET), ("", SECRET), ("abc", None), ("abc", "")])
def test_verify_false_when_signature_or_secret_missing(supplied, secret) -> None:
    """A missing signature or secret is a plain False, not an error."""
    assert verify_signature(b"{}", supplied, secret) is False


def test_verify_rejects_wrong_secret() -> None:
    """A digest made with another secret does not verify."""
    signature = compute_signature(b"{}", "other")

    assert verify_signature(b"{}", signature, SECRET) is False
