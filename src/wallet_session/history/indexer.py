"""
Remote transfer indexers.

Defines the indexer collaborator interface and an aiohttp implementation
for the ``alchemy_getAssetTransfers`` JSON-RPC method. Indexers do not
retry; the history engine owns the retry policy.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
import asyncio
import itertools
import logging

import aiohttp

from ..runtime.errors import ErrorCode, LedgerError, NetworkTransientError, error_from_rpc_response
from .models import TransferRecord

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ("external", "erc20")
TRANSIENT_STATUSES = (408, 429)


class TransferIndexer(ABC):
    """
    Abstract transfer indexer.
    """

    @abstractmethod
    async def get_transfers(self, address: str) -> List[TransferRecord]:
        """
        Fetch transfers touching an address.

        Args:
            address: Account address

        Returns:
            Transfer records ordered by descending recency

        Raises:
            NetworkTransientError: On timeouts, connection failures or 5xx
        """
        pass


def _parse_block_number(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return 0


def _parse_timestamp(metadata: Optional[Dict[str, Any]]) -> Optional[datetime]:
    if not metadata or not metadata.get("blockTimestamp"):
        return None
    try:
        return datetime.fromisoformat(metadata["blockTimestamp"].replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_transfer(raw: Dict[str, Any]) -> TransferRecord:
    """Convert one ``alchemy_getAssetTransfers`` entry to a record."""
    value = raw.get("value")
    return TransferRecord(
        hash=raw["hash"],
        from_address=raw["from"],
        to_address=raw.get("to"),
        value=None if value is None else str(value),
        asset=raw.get("asset"),
        category=raw.get("category", "external"),
        block_number=_parse_block_number(raw.get("blockNum")),
        timestamp=_parse_timestamp(raw.get("metadata")),
    )


def merge_transfers(*batches: Sequence[Dict[str, Any]]) -> List[TransferRecord]:
    """
    Merge raw transfer batches, dropping duplicates, newest block first.
    """
    seen = set()
    records = []
    for raw in itertools.chain(*batches):
        key = raw.get("uniqueId") or (raw.get("hash"), raw.get("from"), raw.get("to"), raw.get("asset"))
        if key in seen:
            continue
        seen.add(key)
        records.append(parse_transfer(raw))
    records.sort(key=lambda record: record.block_number, reverse=True)
    return records


class AlchemyTransferIndexer(TransferIndexer):
    """
    Indexer backed by the ``alchemy_getAssetTransfers`` JSON-RPC method.

    Queries outgoing and incoming transfers concurrently and merges them.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        categories: Sequence[str] = DEFAULT_CATEGORIES,
        max_count: int = 50,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize indexer.

        Args:
            url: JSON-RPC endpoint URL
            timeout: Total request timeout in seconds
            categories: Transfer categories to request
            max_count: Maximum transfers per direction
            session: Optional shared aiohttp session
        """
        self.url = url
        self.timeout = timeout
        self.categories = list(categories)
        self.max_count = max_count
        self._session = session
        self._owns_session = session is None
        self._request_ids = itertools.count(1)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close the owned aiohttp session."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _params(self, direction: str, address: str) -> Dict[str, Any]:
        return {
            "fromBlock": "0x0",
            "toBlock": "latest",
            direction: address,
            "category": self.categories,
            "order": "desc",
            "withMetadata": True,
            "excludeZeroValue": False,
            "maxCount": hex(self.max_count),
        }

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a JSON-RPC payload.

        Raises:
            NetworkTransientError: On timeouts, connection failures, 408/429 or 5xx
            LedgerError: On other HTTP failures
        """
        session = await self._get_session()
        try:
            async with session.post(self.url, json=payload) as response:
                if response.status >= 500 or response.status in TRANSIENT_STATUSES:
                    raise NetworkTransientError(
                        f"Indexer returned HTTP {response.status}",
                        ErrorCode.SERVICE_UNAVAILABLE,
                        details={"status": response.status}
                    )
                if response.status >= 400:
                    raise LedgerError(
                        f"Indexer rejected request with HTTP {response.status}",
                        details={"status": response.status}
                    )
                return await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise NetworkTransientError("Indexer request timed out", ErrorCode.TIMEOUT, cause=e)
        except aiohttp.ClientError as e:
            raise NetworkTransientError(f"Indexer request failed: {e}", cause=e)
        except ValueError as e:
            raise LedgerError("Indexer returned malformed JSON", cause=e)

    async def _query(self, direction: str, address: str) -> List[Dict[str, Any]]:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": "alchemy_getAssetTransfers",
            "params": [self._params(direction, address)],
        }
        body = await self._post(payload)

        error = error_from_rpc_response(body)
        if error is not None:
            raise error

        result = body.get("result") or {}
        transfers = result.get("transfers", [])
        logger.debug(f"Indexer returned {len(transfers)} {direction} transfers for {address}")
        return transfers

    async def get_transfers(self, address: str) -> List[TransferRecord]:
        tasks = [
            asyncio.ensure_future(self._query("fromAddress", address)),
            asyncio.ensure_future(self._query("toAddress", address)),
        ]
        try:
            outgoing, incoming = await asyncio.gather(*tasks)
        finally:
            # A failed direction must not leave the other request running
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        return merge_transfers(outgoing, incoming)

    def __repr__(self) -> str:
        return f"AlchemyTransferIndexer(url='{self.url}')"


__all__ = [
    "TransferIndexer",
    "AlchemyTransferIndexer",
    "parse_transfer",
    "merge_transfers",
]
