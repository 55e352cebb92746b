"""
Shared fixtures for the wallet session tests.

Every fixture wires in-process fakes; nothing here touches the network or
the user's home directory.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from helpers import FakeDerivation, FakeIndexer, RecordingSleep

from wallet_session.config import SessionConfig
from wallet_session.facade import WalletSession
from wallet_session.history.engine import HistoryEngine
from wallet_session.identity.registry import IdentityRegistry
from wallet_session.ledger.client import LedgerClient
from wallet_session.persistence.gateway import PersistenceGateway
from wallet_session.persistence.stores import MemoryStateStore

ADDRESS_A = "0xAAA"
ADDRESS_B = "0xBBB"
ADDRESS_C = "0xCCC"


@pytest.fixture
def derivation():
    """Derivation handing out 0xAAA, 0xBBB, 0xCCC in that order."""
    return FakeDerivation(
        addresses=[ADDRESS_A, ADDRESS_B, ADDRESS_C],
        phrases={"alpha bravo charlie": ADDRESS_A},
        keys={"0x" + "0b" * 32: ADDRESS_B},
    )


@pytest.fixture
def registry(derivation):
    return IdentityRegistry(derivation)


@pytest.fixture
def store():
    return MemoryStateStore()


@pytest.fixture
def gateway(store):
    return PersistenceGateway(store)


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def indexer():
    return FakeIndexer([])


@pytest.fixture
def config(tmp_path):
    return SessionConfig(
        rpc_url="http://127.0.0.1:8545",
        state_path=tmp_path / "state.json",
        history_retry_delay=0.0,
    )


@pytest.fixture
def ledger():
    """Ledger client double with async query methods."""
    client = Mock(spec=LedgerClient)
    client.submit_native_transfer = AsyncMock()
    client.submit_token_transfer = AsyncMock()
    client.get_native_balance = AsyncMock(return_value="0.0")
    return client


@pytest.fixture
def make_session(derivation, gateway, indexer, fake_sleep, ledger, config):
    """Factory building a WalletSession around the shared fakes."""

    def _make(history_indexer=None, load=True):
        session = WalletSession(
            registry=IdentityRegistry(derivation),
            gateway=gateway,
            history_engine=HistoryEngine(history_indexer if history_indexer is not None else indexer, sleep=fake_sleep),
            ledger=ledger,
            config=config,
        )
        if load:
            session.load()
        return session

    return _make


@pytest.fixture
def session(make_session):
    return make_session()
