"""
Key derivation for the wallet session manager.

Provides the derivation collaborator interface and its Ethereum default.
"""

from .derivation import DerivedKey, KeyDerivation, EthKeyDerivation

__all__ = [
    "DerivedKey",
    "KeyDerivation",
    "EthKeyDerivation",
]
