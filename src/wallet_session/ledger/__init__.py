"""
Ledger queries and transfer submission.
"""

from .client import (
    LedgerClient,
    JsonRpcLedgerClient,
    TokenBalance,
    TokenMetadata,
    TransactionDetails,
    TxHandle,
)

__all__ = [
    "LedgerClient",
    "JsonRpcLedgerClient",
    "TokenBalance",
    "TokenMetadata",
    "TransactionDetails",
    "TxHandle",
]
