"""
Shared Coin Exceptions

This module defines custom exceptions for shared coin tree operations.
"""


class SharedCoinError(Exception):
    """Base exception for shared coin errors."""
    pass


class NoStakeholdersError(SharedCoinError):
    """Raised when a shared coin tree is requested for an empty stakeholder list."""
    pass


class InvalidStakeholderError(SharedCoinError):
    """Raised when a stakeholder record is malformed."""
    pass


class StakeholderNotFoundError(SharedCoinError):
    """Raised when no stakeholder owns the requested script."""
    pass
