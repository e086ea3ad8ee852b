"""Tests for PayGate webhook HMAC verification."""

import hashlib
import hmac

from src.pm_boost.infrastructure.webhook_signature import compute_signature, verify_signature

SECRET = "whsec_test"
BODY = b'{"tx_reference":"PG-1","status":"success","amount":2000,"phone":"90123456"}'


def test_compute_matches_hmac_sha256_hex() -> None:
    expected = hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
    assert compute_signature(BODY, SECRET) == expected


def test_valid_signature() -> None:
    assert verify_signature(BODY, compute_signature(BODY, SECRET), SECRET)


def test_prefixed_signature() -> None:
    assert verify_signature(BODY, "sha256=" + compute_signature(BODY, SECRET), SECRET)


def test_tampered_body_rejected() -> None:
    signature = compute_signature(BODY, SECRET)
    assert not verify_signature(BODY.replace(b"2000", b"2"), signature, SECRET)


def test_missing_header_rejected() -> None:
    assert not verify_signature(BODY, None, SECRET)


def test_unconfigured_secret_rejects_everything() -> None:
    assert not verify_signature(BODY, compute_signature(BODY, ""), "")
