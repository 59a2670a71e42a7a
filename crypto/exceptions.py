"""
Cryptographic Exceptions for the shared coin covenant

This module defines custom exceptions for cryptographic operations.
"""


class CryptoError(Exception):
    """Base exception for all cryptographic errors."""
    pass


class InvalidKeyError(CryptoError):
    """Raised when a key or tweak is invalid or malformed."""
    pass
