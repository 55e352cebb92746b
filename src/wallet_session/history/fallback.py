"""
Fixed demo history shown when live retrieval fails or is empty.
"""

from datetime import datetime, timezone
from typing import Tuple

from .models import TransferRecord

_DEMO_COUNTERPARTY = "0x000000000000000000000000000000000000dEaD"
_DEMO_WALLET = "0x0000000000000000000000000000000000000001"

FALLBACK_HISTORY: Tuple[TransferRecord, ...] = (
    TransferRecord(
        hash="0x" + "a1" * 32,
        from_address=_DEMO_COUNTERPARTY,
        to_address=_DEMO_WALLET,
        value="0.25",
        asset="ETH",
        category="external",
        block_number=5_200_300,
        timestamp=datetime(2024, 3, 14, 12, 30, tzinfo=timezone.utc),
        is_demo=True,
    ),
    TransferRecord(
        hash="0x" + "b2" * 32,
        from_address=_DEMO_WALLET,
        to_address=_DEMO_COUNTERPARTY,
        value="15.0",
        asset="USDC",
        category="erc20",
        block_number=5_199_870,
        timestamp=datetime(2024, 3, 13, 9, 5, tzinfo=timezone.utc),
        is_demo=True,
    ),
    TransferRecord(
        hash="0x" + "c3" * 32,
        from_address=_DEMO_COUNTERPARTY,
        to_address=_DEMO_WALLET,
        value="1.0",
        asset="ETH",
        category="external",
        block_number=5_198_002,
        timestamp=datetime(2024, 3, 11, 17, 45, tzinfo=timezone.utc),
        is_demo=True,
    ),
)

__all__ = ["FALLBACK_HISTORY"]
