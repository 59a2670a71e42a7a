"""
Key Operations for Taproot Commitments

This module handles tagged hashes, x-only public keys and the Taproot
tweak-add used to commit a script tree into an output key.

References:
- BIP340: https://github.com/bitcoin/bips/blob/master/bip-0340.mediawiki
- BIP341: https://github.com/bitcoin/bips/blob/master/bip-0341.mediawiki
"""

import hashlib
import secrets
from typing import Optional, Tuple, Union
from coincurve import PrivateKey as CoinCurvePrivateKey, PublicKey as CoinCurvePublicKey

from .exceptions import InvalidKeyError


SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def tagged_hash(tag: str, data: bytes) -> bytes:
    """
    Compute BIP340/341 tagged hash: SHA256(SHA256(tag) + SHA256(tag) + data).

    Args:
        tag: Tag string for the hash
        data: Data to hash

    Returns:
        32-byte tagged hash
    """
    tag_hash = hashlib.sha256(tag.encode('utf-8')).digest()
    return hashlib.sha256(tag_hash + tag_hash + data).digest()


def lift_x(x: bytes) -> Optional[bytes]:
    """
    Lift an x-coordinate to the point with even y.

    Args:
        x: 32-byte x-coordinate

    Returns:
        33-byte compressed public key with even y, or None if x is not on the curve
    """
    if not isinstance(x, bytes) or len(x) != 32:
        return None

    candidate = b'\x02' + x
    try:
        CoinCurvePublicKey(candidate)
    except ValueError:
        return None
    return candidate


def has_even_y(pubkey: bytes) -> bool:
    """Check if a 33-byte compressed public key has an even y-coordinate."""
    return len(pubkey) == 33 and pubkey[0] == 0x02


def xonly_tweak_add(xonly_pubkey: bytes, tweak: bytes) -> Tuple[bytes, int]:
    """
    Add tweak*G to the even-y point with the given x-coordinate.

    Args:
        xonly_pubkey: 32-byte x-only public key
        tweak: 32-byte scalar

    Returns:
        Tuple of (32-byte x-only tweaked key, parity of the tweaked point's y)
    """
    if len(tweak) != 32:
        raise InvalidKeyError("Tweak must be 32 bytes")
    if int.from_bytes(tweak, 'big') >= SECP256K1_ORDER:
        raise InvalidKeyError("Tweak exceeds curve order")

    lifted = lift_x(xonly_pubkey)
    if lifted is None:
        raise InvalidKeyError("Invalid x-only public key")

    try:
        tweaked = CoinCurvePublicKey(lifted).add(tweak)
    except ValueError as e:
        # coincurve rejects a result at infinity
        raise InvalidKeyError(f"Failed to tweak public key: {e}")

    compressed = tweaked.format(compressed=True)
    return compressed[1:], compressed[0] & 1


class PrivateKey:
    """
    Minimal secp256k1 private key wrapper.
    """

    def __init__(self, key_bytes: Optional[bytes] = None):
        """
        Initialize private key.

        Args:
            key_bytes: 32-byte private key. If None, generates random key.
        """
        if key_bytes is None:
            key_bytes = secrets.token_bytes(32)
            while not 0 < int.from_bytes(key_bytes, 'big') < SECP256K1_ORDER:
                key_bytes = secrets.token_bytes(32)

        if not isinstance(key_bytes, bytes) or len(key_bytes) != 32:
            raise InvalidKeyError("Private key must be 32 bytes")

        key_int = int.from_bytes(key_bytes, 'big')
        if key_int == 0 or key_int >= SECP256K1_ORDER:
            raise InvalidKeyError("Private key out of valid range")

        self._key = CoinCurvePrivateKey(key_bytes)

    @property
    def bytes(self) -> bytes:
        """Get private key as bytes."""
        return self._key.secret

    def public_key(self) -> 'PublicKey':
        """Get corresponding public key."""
        return PublicKey(self._key.public_key)

    def tweak_add(self, tweak: bytes) -> 'PrivateKey':
        """Return (self + tweak) mod n."""
        if len(tweak) != 32:
            raise InvalidKeyError("Tweak must be 32 bytes")

        tweaked_int = (int.from_bytes(self.bytes, 'big') + int.from_bytes(tweak, 'big')) % SECP256K1_ORDER
        if tweaked_int == 0:
            raise InvalidKeyError("Tweaked key is zero")
        return PrivateKey(tweaked_int.to_bytes(32, 'big'))

    def negate(self) -> 'PrivateKey':
        """Return n - self."""
        return PrivateKey(((-int.from_bytes(self.bytes, 'big')) % SECP256K1_ORDER).to_bytes(32, 'big'))


class PublicKey:
    """
    Wrapper for public key operations.
    """

    def __init__(self, key_data: Union[bytes, CoinCurvePublicKey]):
        """
        Initialize public key.

        Args:
            key_data: Public key bytes (33 or 65 bytes) or CoinCurvePublicKey
        """
        if isinstance(key_data, CoinCurvePublicKey):
            self._key = key_data
            return

        if not isinstance(key_data, bytes):
            raise InvalidKeyError("Public key data must be bytes")
        if len(key_data) not in [33, 65]:
            raise InvalidKeyError("Public key must be 33 or 65 bytes")
        try:
            self._key = CoinCurvePublicKey(key_data)
        except ValueError as e:
            raise InvalidKeyError(f"Failed to create public key: {e}")

    @property
    def bytes(self) -> bytes:
        """Get compressed public key as bytes."""
        return self._key.format(compressed=True)

    @property
    def x_only(self) -> bytes:
        """Get x-only public key for Taproot (32 bytes)."""
        return self.bytes[1:]

    @property
    def has_even_y(self) -> bool:
        return has_even_y(self.bytes)
