"""Tests for webhook signature verification."""

import hashlib
import hmac

from webex_channel.adapters.signature import compute_signature, verify_signature

BODY = b'{"id":"webhook-1","resource":"messages","event":"created"}'
SECRET = "shared-secret"


def _sign(body: bytes, secret: str = SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha1).hexdigest()


def test_correct_signature_verifies():
    assert verify_signature(BODY, _sign(BODY), SECRET) is True


def test_compute_signature_is_hmac_sha1_hex():
    assert compute_signature(BODY, SECRET) == _sign(BODY)


def test_any_single_byte_mutation_fails():
    signature = _sign(BODY)
    for i in range(len(BODY)):
        mutated = bytearray(BODY)
        mutated[i] ^= 0x01
        assert verify_signature(bytes(mutated), signature, SECRET) is False


def test_wrong_secret_fails():
    assert verify_signature(BODY, _sign(BODY, "other"), SECRET) is False


def test_missing_secret_always_passes():
    assert verify_signature(BODY, "anything", None) is True
    assert verify_signature(BODY, None, "") is True


def test_mismatched_length_is_failure_not_exception():
    assert verify_signature(BODY, "abc", SECRET) is False
    assert verify_signature(BODY, _sign(BODY) + "00", SECRET) is False


def test_non_ascii_signature_is_failure_not_exception():
    assert verify_signature(BODY, "é" * 40, SECRET) is False


def test_missing_signature_with_secret_fails():
    assert verify_signature(BODY, None, SECRET) is False
