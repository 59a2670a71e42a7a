"""
Tests for Crypto Keys Module

Tests BIP340 tagged hashes, lift_x and the x-only Taproot tweak-add.
"""

import hashlib

import pytest

from crypto.keys import (
    PrivateKey,
    PublicKey,
    tagged_hash,
    lift_x,
    has_even_y,
    xonly_tweak_add,
    SECP256K1_ORDER,
)
from crypto.exceptions import CryptoError, InvalidKeyError


SECP256K1_FIELD_PRIME = 2**256 - 2**32 - 977


class TestTaggedHash:
    """Test BIP340/341 tagged hash functionality."""

    def test_tagged_hash_definition(self):
        """Tagged hash equals SHA256(SHA256(tag) || SHA256(tag) || data)."""
        tag_hash = hashlib.sha256(b"TapBranch/elements").digest()
        expected = hashlib.sha256(tag_hash + tag_hash + b"data").digest()

        assert tagged_hash("TapBranch/elements", b"data") == expected

    def test_tagged_hash_different_tags(self):
        """Different tags produce independent hash families."""
        data = b'\x01' * 64
        assert tagged_hash("TapTweak/elements", data) != tagged_hash("TapBranch/elements", data)
        assert tagged_hash("TapTweak/elements", data) != tagged_hash("TapTweak", data)


class TestPointOperations:
    """Test x-only point operations."""

    def test_lift_x_returns_even_point(self):
        x_only = PrivateKey(b'\x01' * 32).public_key().x_only

        lifted = lift_x(x_only)

        assert lifted == b'\x02' + x_only
        assert has_even_y(lifted)

    def test_lift_x_invalid(self):
        assert lift_x(b'\x01' * 31) is None
        assert lift_x(b'\x01' * 33) is None
        # x >= p is never a valid coordinate
        assert lift_x(SECP256K1_FIELD_PRIME.to_bytes(32, 'big')) is None

    def test_tweak_add_matches_private_key_tweak(self):
        """(P + t*G) computed on the public side equals (k + t)*G."""
        private_key = PrivateKey(b'\x05' * 32)
        if not private_key.public_key().has_even_y:
            private_key = private_key.negate()
        tweak = tagged_hash("test", b"tweak")

        tweaked_x, parity = xonly_tweak_add(private_key.public_key().x_only, tweak)

        expected = private_key.tweak_add(tweak).public_key()
        assert tweaked_x == expected.x_only
        assert parity == expected.bytes[0] & 1

    def test_tweak_add_uses_even_y_lift(self):
        """Odd and even keys with the same x tweak to the same result."""
        private_key = PrivateKey(b'\x07' * 32)
        tweak = tagged_hash("test", b"parity")

        from_even = xonly_tweak_add(private_key.public_key().x_only, tweak)
        from_negated = xonly_tweak_add(private_key.negate().public_key().x_only, tweak)

        assert from_even == from_negated

    def test_tweak_add_rejects_malformed_input(self):
        x_only = PrivateKey(b'\x01' * 32).public_key().x_only

        with pytest.raises(InvalidKeyError, match="Tweak must be 32 bytes"):
            xonly_tweak_add(x_only, b'\x01' * 31)
        with pytest.raises(InvalidKeyError, match="Invalid x-only public key"):
            xonly_tweak_add(b'\x01' * 31, b'\x01' * 32)
        with pytest.raises(InvalidKeyError, match="curve order"):
            xonly_tweak_add(x_only, SECP256K1_ORDER.to_bytes(32, 'big'))

    def test_tweak_add_rejects_point_at_infinity(self):
        """Tweaking P by -k yields infinity."""
        private_key = PrivateKey(b'\x09' * 32)
        if not private_key.public_key().has_even_y:
            private_key = private_key.negate()
        negated = private_key.negate().bytes

        with pytest.raises(InvalidKeyError):
            xonly_tweak_add(private_key.public_key().x_only, negated)


class TestKeyWrappers:
    """Test private/public key wrappers."""

    def test_random_private_key(self):
        key = PrivateKey()
        assert 0 < int.from_bytes(key.bytes, 'big') < SECP256K1_ORDER
        assert len(key.public_key().x_only) == 32

    def test_private_key_range(self):
        with pytest.raises(InvalidKeyError):
            PrivateKey(b'\x00' * 32)
        with pytest.raises(InvalidKeyError):
            PrivateKey(SECP256K1_ORDER.to_bytes(32, 'big'))
        with pytest.raises(InvalidKeyError):
            PrivateKey(b'\x01' * 16)

    def test_public_key_round_trip(self):
        public_key = PrivateKey(b'\x01' * 32).public_key()
        assert PublicKey(public_key.bytes).x_only == public_key.x_only

    def test_public_key_invalid(self):
        with pytest.raises(InvalidKeyError):
            PublicKey(b'\x02' * 10)
        with pytest.raises(InvalidKeyError):
            PublicKey(b'\x02' + SECP256K1_FIELD_PRIME.to_bytes(32, 'big'))

    def test_exception_hierarchy(self):
        assert issubclass(InvalidKeyError, CryptoError)
