"""
Transaction history retrieval.
"""

from .models import TransferRecord, HistoryResult, HistorySource, HistoryState, FallbackReason
from .fallback import FALLBACK_HISTORY
from .indexer import TransferIndexer, AlchemyTransferIndexer
from .engine import HistoryEngine

__all__ = [
    "TransferRecord",
    "HistoryResult",
    "HistorySource",
    "HistoryState",
    "FallbackReason",
    "FALLBACK_HISTORY",
    "TransferIndexer",
    "AlchemyTransferIndexer",
    "HistoryEngine",
]
