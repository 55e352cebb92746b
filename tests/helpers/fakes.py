"""
Fake collaborators for testing.

In-process stand-ins for key derivation, wallet connectors, transfer
indexers and the retry sleep, so tests run without network access or real
delays.
"""

from __future__ import annotations
import asyncio
from typing import Any, Iterable, List, Optional, Sequence, Union

from wallet_session.history.indexer import TransferIndexer
from wallet_session.history.models import TransferRecord
from wallet_session.identity.models import ConnectorKind
from wallet_session.keys.derivation import DerivedKey, KeyDerivation, normalize_phrase
from wallet_session.runtime.errors import InvalidKeyMaterial, InvalidRecoveryPhrase
from wallet_session.session.connector import WalletConnector


class FakeDerivation(KeyDerivation):
    """
    Deterministic key derivation.

    ``generate_identity`` hands out the configured addresses in order.
    Phrases and keys map to addresses through the ``phrases`` and ``keys``
    tables; anything else is rejected.
    """

    def __init__(self, addresses: Iterable[str] = (), phrases: Optional[dict] = None,
                 keys: Optional[dict] = None):
        self._addresses = list(addresses)
        self.phrases = phrases or {}
        self.keys = keys or {}
        self.generated = 0

    def generate_identity(self) -> DerivedKey:
        address = self._addresses[self.generated]
        self.generated += 1
        return DerivedKey(
            address=address,
            key_material="0x" + f"{self.generated:064x}",
            recovery_phrase=f"phrase for {address}",
        )

    def derive_from_phrase(self, phrase: str) -> DerivedKey:
        phrase = normalize_phrase(phrase)
        if phrase not in self.phrases:
            raise InvalidRecoveryPhrase()
        return DerivedKey(address=self.phrases[phrase], key_material="0x" + "ab" * 32,
                          recovery_phrase=phrase)

    def derive_from_key_material(self, raw: str) -> DerivedKey:
        if raw not in self.keys:
            raise InvalidKeyMaterial()
        return DerivedKey(address=self.keys[raw], key_material=raw)


class FakeConnector(WalletConnector):
    """
    Scripted wallet extension.

    Answers ``eth_requestAccounts`` / ``eth_accounts`` with ``accounts`` or
    raises ``error``. When ``gate`` is set, requests wait for it first.
    """

    def __init__(self, accounts: Sequence[str] = (), kind: ConnectorKind = ConnectorKind.EXTENSION_A,
                 error: Optional[Exception] = None, gate: Optional[asyncio.Event] = None):
        self.accounts = list(accounts)
        self.kind = kind
        self.error = error
        self.gate = gate
        self.calls: List[str] = []

    async def request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        self.calls.append(method)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.accounts)


class FakeIndexer(TransferIndexer):
    """
    Scripted transfer indexer.

    Each call consumes the next scripted outcome: an exception instance is
    raised, anything else is returned. The last outcome repeats once the
    script runs out.
    """

    def __init__(self, *outcomes: Union[Exception, List[TransferRecord]],
                 gate: Optional[asyncio.Event] = None):
        self.outcomes = list(outcomes) or [[]]
        self.gate = gate
        self.calls: List[str] = []
        self.closed = False

    async def get_transfers(self, address: str) -> List[TransferRecord]:
        index = min(len(self.calls), len(self.outcomes) - 1)
        self.calls.append(address)
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def close(self):
        self.closed = True


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)
        await asyncio.sleep(0)
