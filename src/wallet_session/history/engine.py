"""
History retrieval engine.

Fetches transfer history with a bounded fixed-delay retry and degrades to a
fixed, labeled fallback dataset when live retrieval fails or comes back
empty. ``fetch_history`` never raises to its caller; the returned
``HistoryResult`` says whether the records are live or fallback.

State machine::

    IDLE -> FETCHING -> SUCCESS  -> IDLE
                     -> FALLBACK -> IDLE   (empty result or retries exhausted)
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple
import asyncio
import logging

from ..config import SessionConfig
from ..recovery.retry import FixedBackoff, MaxRetriesExceeded
from ..runtime.errors import ValidationError
from .fallback import FALLBACK_HISTORY
from .indexer import AlchemyTransferIndexer, TransferIndexer
from .models import (
    FallbackReason,
    HistoryResult,
    HistorySource,
    HistoryState,
    TransferRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 2.0


class HistoryEngine:
    """
    Resilient transaction history retrieval.

    Overlapping fetches for the same address share one in-flight task.
    """

    def __init__(
        self,
        indexer: TransferIndexer,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        fallback: Iterable[TransferRecord] = FALLBACK_HISTORY,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        on_transition: Optional[Callable[[str, HistoryState], None]] = None
    ):
        """
        Initialize history engine.

        Args:
            indexer: Remote transfer indexer
            max_attempts: Attempts per fetch, including the first
            retry_delay: Fixed delay between attempts in seconds
            fallback: Records returned when live data is unavailable
            sleep: Awaitable sleep used between attempts
            on_transition: Callback receiving ``(address, state)`` on each transition
        """
        self.indexer = indexer
        self.policy = FixedBackoff(
            max_attempts=max_attempts,
            delay=retry_delay,
            non_retryable_exceptions=(ValidationError,),
            sleep=sleep
        )
        self.fallback: Tuple[TransferRecord, ...] = tuple(fallback)
        if not self.fallback:
            raise ValueError("Fallback dataset must not be empty")
        self.on_transition = on_transition

        self._state = HistoryState.IDLE
        self.last_outcome: Optional[HistoryState] = None
        self._in_flight: Dict[str, asyncio.Task] = {}

    @classmethod
    def from_config(cls, config: SessionConfig, indexer: Optional[TransferIndexer] = None) -> HistoryEngine:
        """Build an engine using the configured indexer endpoint and retry policy."""
        if indexer is None:
            indexer = AlchemyTransferIndexer(config.indexer_url, timeout=config.request_timeout)
        return cls(
            indexer,
            max_attempts=config.history_max_attempts,
            retry_delay=config.history_retry_delay,
        )

    @property
    def state(self) -> HistoryState:
        return self._state

    def is_fetching(self, address: Optional[str] = None) -> bool:
        if address is None:
            return bool(self._in_flight)
        return address in self._in_flight

    def _transition(self, address: str, state: HistoryState):
        logger.debug(f"History[{address}]: {self._state.value} -> {state.value}")
        self._state = state
        if self.on_transition is not None:
            self.on_transition(address, state)

    async def fetch_history(self, address: str) -> HistoryResult:
        """
        Fetch transfer history for an address.

        Args:
            address: Account address

        Returns:
            Live records in indexer order, or the fallback dataset when every
            attempt failed or the indexer returned no records
        """
        task = self._in_flight.get(address)
        if task is None:
            task = asyncio.ensure_future(self._fetch(address))
            self._in_flight[address] = task
            task.add_done_callback(lambda t: self._forget(address, t))
        else:
            logger.debug(f"Joining in-flight history fetch for {address}")
        # A cancelled caller must not cancel the fetch other callers share
        return await asyncio.shield(task)

    def _forget(self, address: str, task: asyncio.Task):
        if self._in_flight.get(address) is task:
            del self._in_flight[address]

    async def _fetch(self, address: str) -> HistoryResult:
        self._transition(address, HistoryState.FETCHING)
        attempts = 0

        async def attempt() -> Tuple[TransferRecord, ...]:
            nonlocal attempts
            attempts += 1
            records = await self.indexer.get_transfers(address)
            return tuple(records or ())

        try:
            records = await self.policy.execute(attempt)
        except MaxRetriesExceeded as e:
            logger.warning(
                f"History for {address} unavailable after {attempts} attempts "
                f"({e.last_error}); using fallback data"
            )
            result = HistoryResult(
                address=address,
                source=HistorySource.FALLBACK,
                records=self.fallback,
                reason=FallbackReason.RETRIES_EXHAUSTED,
                attempts=attempts,
                error=str(e.last_error),
            )
        else:
            if records:
                result = HistoryResult(
                    address=address,
                    source=HistorySource.LIVE,
                    records=records,
                    attempts=attempts,
                )
            else:
                logger.info(f"No history for {address}; using fallback data")
                result = HistoryResult(
                    address=address,
                    source=HistorySource.FALLBACK,
                    records=self.fallback,
                    reason=FallbackReason.EMPTY,
                    attempts=attempts,
                )

        outcome = HistoryState.FALLBACK if result.is_fallback else HistoryState.SUCCESS
        self._transition(address, outcome)
        self.last_outcome = outcome
        others_pending = any(a != address for a in self._in_flight)
        self._transition(address, HistoryState.FETCHING if others_pending else HistoryState.IDLE)
        return result

    async def aclose(self):
        """Close the indexer if it holds network resources."""
        close = getattr(self.indexer, "close", None)
        if close is not None:
            await close()

    def __repr__(self) -> str:
        return f"HistoryEngine(state={self._state.value}, in_flight={len(self._in_flight)})"


__all__ = ["HistoryEngine"]
