"""Tests for password hashing."""

from __future__ import annotations

from storefront.passwords import hash_password, verify_password


def test_hash_round_trip_and_rejects_wrong_password() -> None:
    encoded = hash_password("s3cret-pass")

    assert encoded.startswith("scrypt$")
    assert "s3cret-pass" not in encoded
    assert verify_password("s3cret-pass", encoded)
    assert not verify_password("s3cret-pasS", encoded)


def test_hashes_are_salted() -> None:
    """Hashing the same password twice must not produce the same string."""

    assert hash_password("same") != hash_password("same")


def test_malformed_hash_never_verifies() -> None:
    assert not verify_password("anything", "")
    assert not verify_password("anything", "bcrypt$whatever")
    assert not verify_password("anything", "scrypt$16384$8$1$not base64!$abc")
