"""
Key derivation for managed identities.

Defines the key-derivation collaborator interface and the default
Ethereum implementation backed by ``eth_account``. Signature algorithms and
address encoding are delegated entirely to that library.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional
import logging
import re

from eth_account import Account

from ..runtime.errors import InvalidKeyMaterial, InvalidRecoveryPhrase

logger = logging.getLogger(__name__)

# Mnemonic derivation in eth-account is gated behind this switch
Account.enable_unaudited_hdwallet_features()

DEFAULT_ACCOUNT_PATH = "m/44'/60'/0'/0/0"
VALID_WORD_COUNTS = (12, 15, 18, 21, 24)

_SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_HEX_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


@dataclass(frozen=True)
class DerivedKey:
    """
    Output of the key-derivation collaborator.

    ``key_material`` and ``recovery_phrase`` are secrets; they are excluded
    from ``repr``.
    """
    address: str
    key_material: str = field(repr=False)
    recovery_phrase: Optional[str] = field(default=None, repr=False)


def normalize_phrase(phrase: str) -> str:
    """Collapse whitespace and lowercase a recovery phrase."""
    return " ".join(phrase.strip().lower().split())


def looks_like_phrase(secret: str) -> bool:
    """True when ``secret`` is shaped like a word list rather than a hex key."""
    return len(secret.strip().split()) > 1


class KeyDerivation(ABC):
    """
    Abstract key-derivation collaborator.

    Generates fresh identities and re-derives them from a recovery phrase
    or raw key material.
    """

    @abstractmethod
    def generate_identity(self) -> DerivedKey:
        """
        Generate a fresh identity from new entropy.

        Returns:
            Derived key including recovery phrase when supported
        """
        pass

    @abstractmethod
    def derive_from_phrase(self, phrase: str) -> DerivedKey:
        """
        Deterministically derive an identity from a recovery phrase.

        Raises:
            InvalidRecoveryPhrase: If the phrase fails format/checksum validation
        """
        pass

    @abstractmethod
    def derive_from_key_material(self, raw: str) -> DerivedKey:
        """
        Derive the address for raw key material.

        Raises:
            InvalidKeyMaterial: If the key material is malformed
        """
        pass


class EthKeyDerivation(KeyDerivation):
    """
    Ethereum key derivation using BIP-39 phrases and the BIP-44 default path.
    """

    def __init__(self, account_path: str = DEFAULT_ACCOUNT_PATH, num_words: int = 12):
        """
        Initialize derivation.

        Args:
            account_path: HD derivation path for phrase-based identities
            num_words: Word count for generated recovery phrases
        """
        if num_words not in VALID_WORD_COUNTS:
            raise ValueError(f"Unsupported phrase length: {num_words}")
        self.account_path = account_path
        self.num_words = num_words

    def generate_identity(self) -> DerivedKey:
        """Generate a new phrase-backed identity."""
        account, phrase = Account.create_with_mnemonic(
            num_words=self.num_words,
            account_path=self.account_path
        )
        logger.debug(f"Generated identity {account.address}")
        return DerivedKey(
            address=account.address,
            key_material="0x" + bytes(account.key).hex(),
            recovery_phrase=phrase
        )

    def derive_from_phrase(self, phrase: str) -> DerivedKey:
        """Derive an identity from a BIP-39 recovery phrase."""
        if not isinstance(phrase, str):
            raise InvalidRecoveryPhrase("Recovery phrase must be a string")

        normalized = normalize_phrase(phrase)
        word_count = len(normalized.split())
        if word_count not in VALID_WORD_COUNTS:
            raise InvalidRecoveryPhrase(
                f"Recovery phrase must have 12-24 words, got {word_count}",
                details={"wordCount": word_count}
            )

        try:
            account = Account.from_mnemonic(normalized, account_path=self.account_path)
        except Exception:
            # Unknown words and checksum mismatches both surface here; the
            # library message echoes the phrase
            raise InvalidRecoveryPhrase() from None

        return DerivedKey(
            address=account.address,
            key_material="0x" + bytes(account.key).hex(),
            recovery_phrase=normalized
        )

    def derive_from_key_material(self, raw: str) -> DerivedKey:
        """Derive the address for a 32-byte hex private key."""
        if not isinstance(raw, str) or not _HEX_KEY_RE.match(raw.strip()):
            raise InvalidKeyMaterial("Key material must be 32 bytes of hex")

        key_hex = raw.strip().lower()
        if key_hex.startswith("0x"):
            key_hex = key_hex[2:]
        if not 0 < int(key_hex, 16) < _SECP256K1_ORDER:
            raise InvalidKeyMaterial("Key material is outside the curve order")

        try:
            account = Account.from_key("0x" + key_hex)
        except Exception:
            raise InvalidKeyMaterial() from None

        return DerivedKey(address=account.address, key_material="0x" + key_hex)


__all__ = [
    "DerivedKey",
    "KeyDerivation",
    "EthKeyDerivation",
    "DEFAULT_ACCOUNT_PATH",
    "normalize_phrase",
    "looks_like_phrase",
]
