"""Runtime helpers for the wallet session manager"""

from .errors import (
    ErrorCode,
    WalletSessionError,
    ValidationError,
    InvalidRecoveryPhrase,
    InvalidKeyMaterial,
    InvalidAddress,
    UnknownIdentity,
    ConnectorError,
    UserRejected,
    ProviderUnavailable,
    NetworkTransientError,
    LedgerError,
    StorageCorruptionError,
)

__all__ = [
    "ErrorCode",
    "WalletSessionError",
    "ValidationError",
    "InvalidRecoveryPhrase",
    "InvalidKeyMaterial",
    "InvalidAddress",
    "UnknownIdentity",
    "ConnectorError",
    "UserRejected",
    "ProviderUnavailable",
    "NetworkTransientError",
    "LedgerError",
    "StorageCorruptionError",
]
