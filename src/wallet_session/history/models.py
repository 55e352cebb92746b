"""
Transaction history types.

Transfer records, the tagged result returned by the history engine, and
the engine's state machine states.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field


class TransferRecord(BaseModel):
    """
    One asset transfer touching an address.

    ``is_demo`` marks records from the fallback dataset, which are never
    real chain data.
    """
    hash: str
    from_address: str = Field(alias="from")
    to_address: Optional[str] = Field(default=None, alias="to")
    value: Optional[str] = None
    asset: Optional[str] = None
    category: str = "external"
    block_number: int = Field(default=0, alias="blockNumber", ge=0)
    timestamp: Optional[datetime] = None
    is_demo: bool = Field(default=False, alias="isDemo")

    model_config = {
        "populate_by_name": True,
        "frozen": True,
    }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return self.model_dump(by_alias=True, mode="json")


class HistorySource(str, Enum):
    """Where a history result came from."""
    LIVE = "live"
    FALLBACK = "fallback"


class FallbackReason(str, Enum):
    """Why fallback data was returned."""
    EMPTY = "empty"
    RETRIES_EXHAUSTED = "retries_exhausted"


class HistoryState(str, Enum):
    """
    History engine states.

    IDLE -> FETCHING -> {SUCCESS, FALLBACK} -> IDLE
    """
    IDLE = "idle"
    FETCHING = "fetching"
    SUCCESS = "success"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class HistoryResult:
    """
    Tagged history result.

    Callers can always render ``records``; ``source`` says whether they are
    live chain data or the fixed fallback dataset.
    """
    address: str
    source: HistorySource
    records: Tuple[TransferRecord, ...]
    reason: Optional[FallbackReason] = None
    attempts: int = 0
    error: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.source == HistorySource.FALLBACK

    @property
    def is_live(self) -> bool:
        return self.source == HistorySource.LIVE

    def __len__(self) -> int:
        return len(self.records)


__all__ = [
    "TransferRecord",
    "HistorySource",
    "FallbackReason",
    "HistoryState",
    "HistoryResult",
]
