"""
Shared Coin Covenant - Cryptographic Operations Module

This module provides the secp256k1 primitives the covenant tree relies on:
- BIP340 tagged hashes
- x-only public keys and lift_x
- Taproot tweak-add for output key commitments

Dependencies:
- coincurve: Fast secp256k1 operations
- hashlib: Cryptographic hash functions
"""

from .exceptions import (
    CryptoError,
    InvalidKeyError,
)
from .keys import (
    PrivateKey,
    PublicKey,
    tagged_hash,
    lift_x,
    has_even_y,
    xonly_tweak_add,
)

__version__ = "0.1.0"
__all__ = [
    # Exceptions
    "CryptoError",
    "InvalidKeyError",

    # Keys
    "PrivateKey",
    "PublicKey",
    "tagged_hash",
    "lift_x",
    "has_even_y",
    "xonly_tweak_add",
]
