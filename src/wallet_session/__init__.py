"""
Wallet Session - identity and session manager for a browser-style wallet.

Manages locally controlled key pairs, tracks an externally connected wallet
identity, persists both across restarts, and retrieves transaction history
with a bounded retry and a labeled fallback.
"""

# Configuration
from .config import SessionConfig

# Error model
from .runtime.errors import *

# Key derivation
from .keys import DerivedKey, KeyDerivation, EthKeyDerivation

# Identities
from .identity import ConnectorKind, ManagedIdentity, ConnectedIdentity, IdentityRegistry

# Connected session
from .session import ConnectorEvent, ConnectorEventType, WalletConnector, SessionCoordinator

# Persistence
from .persistence import (
    StateStore, MemoryStateStore, FileStateStore,
    PersistenceGateway, SessionSnapshot
)

# History
from .history import (
    TransferRecord, HistoryResult, HistorySource, HistoryState, FallbackReason,
    FALLBACK_HISTORY, TransferIndexer, AlchemyTransferIndexer, HistoryEngine
)

# Ledger
from .ledger import (
    LedgerClient, JsonRpcLedgerClient,
    TokenBalance, TokenMetadata, TransactionDetails, TxHandle
)

# Error recovery
from .recovery import FixedBackoff, MaxRetriesExceeded

# Session facade
from .facade import WalletSession

__version__ = "0.1.0"
__all__ = [
    "SessionConfig",
    # Errors
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
    # Keys
    "DerivedKey",
    "KeyDerivation",
    "EthKeyDerivation",
    # Identities
    "ConnectorKind",
    "ManagedIdentity",
    "ConnectedIdentity",
    "IdentityRegistry",
    # Session
    "ConnectorEvent",
    "ConnectorEventType",
    "WalletConnector",
    "SessionCoordinator",
    # Persistence
    "StateStore",
    "MemoryStateStore",
    "FileStateStore",
    "PersistenceGateway",
    "SessionSnapshot",
    # History
    "TransferRecord",
    "HistoryResult",
    "HistorySource",
    "HistoryState",
    "FallbackReason",
    "FALLBACK_HISTORY",
    "TransferIndexer",
    "AlchemyTransferIndexer",
    "HistoryEngine",
    # Ledger
    "LedgerClient",
    "JsonRpcLedgerClient",
    "TokenBalance",
    "TokenMetadata",
    "TransactionDetails",
    "TxHandle",
    # Recovery
    "FixedBackoff",
    "MaxRetriesExceeded",
    # Facade
    "WalletSession",
]
