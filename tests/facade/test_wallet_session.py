"""
Unit tests for the WalletSession facade.

Tests write-on-mutation persistence, restart behavior, the end-to-end
identity scenario, connection handling, and stale history discarding.
"""

import asyncio
import json

import pytest

from helpers import FakeConnector, FakeIndexer, mk_records

from wallet_session.config import SessionConfig
from wallet_session.facade import WalletSession
from wallet_session.history.models import HistorySource
from wallet_session.identity.models import ConnectorKind
from wallet_session.persistence.stores import FileStateStore
from wallet_session.runtime.errors import (
    NetworkTransientError,
    ProviderUnavailable,
    UnknownIdentity,
    UserRejected,
)
from wallet_session.session.connector import ConnectorEvent


class TestConstruction:
    """Tests for collaborator injection."""

    def test_empty_collaborators_are_kept(self, registry, gateway, ledger, config):
        """Test an empty registry and gateway are used, not replaced."""
        session = WalletSession(registry=registry, gateway=gateway, ledger=ledger, config=config)

        assert len(registry) == 0
        assert session.registry is registry
        assert session.gateway is gateway
        assert session.ledger is ledger

    def test_open_uses_injected_derivation(self, store, derivation, ledger, config):
        """Test open() creates identities through the given derivation."""
        session = WalletSession.open(config, store=store, derivation=derivation,
                                     indexer=FakeIndexer(), ledger=ledger)

        identity = session.create_identity()

        assert identity.address == "0xAAA"
        assert derivation.generated == 1
        assert session.gateway.store is store


class TestEndToEnd:
    """The create/add/remove scenario."""

    def test_identity_lifecycle(self, session, store):
        """Test active pointer through create, add and remove."""
        first = session.registry.create_identity()
        assert first.address == "0xAAA"
        session.add_identity(first)
        assert session.registry.active_address == "0xAAA"

        second = session.registry.create_identity()
        assert second.address == "0xBBB"
        session.add_identity(second)
        assert session.registry.active_address == "0xAAA"

        session.remove_identity("0xAAA")
        assert session.registry.active_address == "0xBBB"
        assert store.write_count == 3

    def test_duplicate_ordering(self, session):
        """Test add A, add B, add A again gives [B, A]."""
        a = session.registry.create_identity()
        b = session.registry.create_identity()
        session.add_identity(a)
        session.add_identity(b)
        session.add_identity(a)

        assert [i.address for i in session.identities] == ["0xBBB", "0xAAA"]


class TestPersistence:
    """Tests for write-on-mutation and restart."""

    def test_every_mutation_saves(self, session, store):
        """Test each state-changing call writes once."""
        session.create_identity(name="Main")
        session.create_identity()
        session.set_active("0xBBB")
        session.rename_identity("0xBBB", "Second")
        session.remove_identity("0xAAA")

        assert store.write_count == 5
        document = json.loads(store.read())
        assert document["activeAddress"] == "0xBBB"
        assert [i["address"] for i in document["identities"]] == ["0xBBB"]

    def test_noop_mutations_do_not_save(self, session, store):
        """Test unchanged state is not rewritten."""
        session.create_identity()
        session.remove_identity("0xZZZ")
        session.rename_identity("0xZZZ", "x")
        session.set_active("0xAAA")
        session.disconnect()

        assert store.write_count == 1

    def test_restart_restores_state(self, session, make_session):
        """Test a new session over the same store sees the same identities."""
        session.create_identity(name="Main")
        session.import_identity("alpha bravo charlie")  # 0xAAA again, moved to end
        session.import_identity("0x" + "0b" * 32)
        session.set_active("0xBBB")
        session.apply_connector_event(ConnectorEvent.connected(1, "0xEXT", ConnectorKind.EXTENSION_B))

        restarted = make_session()

        assert [i.address for i in restarted.identities] == ["0xAAA", "0xBBB"]
        assert restarted.registry.active_address == "0xBBB"
        assert restarted.connected.address == "0xEXT"
        assert restarted.connected.connector_kind == ConnectorKind.EXTENSION_B
        assert restarted.connected.live is False

    def test_corrupt_store_starts_empty(self, make_session, store):
        """Test corrupted persisted state yields an empty, usable session."""
        store.write("{corrupt")
        session = make_session()

        assert len(session.registry) == 0
        assert session.connected is None
        session.create_identity()
        assert session.registry.active_address == "0xAAA"

    def test_open_uses_file_store(self, tmp_path, derivation, ledger):
        """Test open() restores from the configured state path."""
        config = SessionConfig(rpc_url="http://127.0.0.1:8545", state_path=tmp_path / "state.json")
        first = WalletSession.open(config, derivation=derivation, indexer=FakeIndexer(), ledger=ledger)
        first.create_identity(name="Main")

        assert isinstance(first.gateway.store, FileStateStore)
        second = WalletSession.open(config, derivation=derivation, indexer=FakeIndexer(), ledger=ledger)
        assert second.active_identity.label == "Main"

    def test_set_active_unknown(self, session, store):
        """Test selecting an unknown identity raises and does not save."""
        with pytest.raises(UnknownIdentity):
            session.set_active("0xZZZ")
        assert store.write_count == 0


class TestConnection:
    """Tests for the connected identity track."""

    @pytest.mark.asyncio
    async def test_connect_saves(self, session, store):
        """Test a successful connect is persisted."""
        assert await session.connect(FakeConnector(["0xEXT"]))
        assert json.loads(store.read())["connected"] == {"address": "0xEXT", "kind": "extensionA"}

    @pytest.mark.asyncio
    async def test_connected_never_becomes_active(self, session):
        """Test connecting leaves the managed active identity alone."""
        session.create_identity()
        await session.connect(FakeConnector(["0xEXT"]))

        assert session.registry.active_address == "0xAAA"
        assert "0xEXT" not in session.registry

    @pytest.mark.asyncio
    async def test_connect_rejected(self, session, store):
        """Test UserRejected propagates without saving."""
        with pytest.raises(UserRejected):
            await session.connect(FakeConnector(error=UserRejected()))
        assert store.write_count == 0

    @pytest.mark.asyncio
    async def test_revalidate_after_restart(self, session, make_session):
        """Test a restored connection becomes live after revalidation."""
        await session.connect(FakeConnector(["0xEXT"]))
        restarted = make_session()

        assert await restarted.revalidate(FakeConnector(["0xEXT"]))
        assert restarted.connected.live

    @pytest.mark.asyncio
    async def test_revalidate_failure_clears_and_saves(self, session, make_session, store):
        """Test a faulted provider clears the stale connection persistently."""
        await session.connect(FakeConnector(["0xEXT"]))
        restarted = make_session()

        with pytest.raises(ProviderUnavailable):
            await restarted.revalidate(FakeConnector(error=ProviderUnavailable()))

        assert restarted.connected is None
        assert json.loads(store.read())["connected"] is None

    def test_disconnect(self, session, store):
        """Test disconnect clears and saves."""
        session.apply_connector_event(ConnectorEvent.connected(1, "0xEXT", ConnectorKind.EXTENSION_A))
        assert session.disconnect()
        assert json.loads(store.read())["connected"] is None


class TestHistory:
    """Tests for refresh_history."""

    @pytest.mark.asyncio
    async def test_refresh_applies_result(self, make_session):
        """Test a completed fetch is applied for the active identity."""
        session = make_session(history_indexer=FakeIndexer(mk_records(3)))
        session.create_identity()

        result = await session.refresh_history()

        assert result.source == HistorySource.LIVE
        assert session.history is result
        assert result.address == "0xAAA"

    @pytest.mark.asyncio
    async def test_refresh_without_identity(self, session):
        """Test there is nothing to fetch without an active identity."""
        assert await session.refresh_history() is None

    @pytest.mark.asyncio
    async def test_stale_result_discarded(self, make_session):
        """Test a result for a no-longer-active identity is dropped."""
        gate = asyncio.Event()
        session = make_session(history_indexer=FakeIndexer(mk_records(2), gate=gate))
        session.create_identity()
        session.create_identity()

        task = asyncio.ensure_future(session.refresh_history())
        await asyncio.sleep(0)
        session.set_active("0xBBB")
        gate.set()

        assert await task is None
        assert session.history is None

    @pytest.mark.asyncio
    async def test_fallback_is_tagged(self, make_session, fake_sleep):
        """Test failures surface as a tagged fallback, not an exception."""
        session = make_session(history_indexer=FakeIndexer(NetworkTransientError("down")))
        session.create_identity()

        result = await session.refresh_history()

        assert result.is_fallback
        assert all(record.is_demo for record in result.records)
        assert fake_sleep.delays == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_switching_identity_clears_history(self, make_session):
        """Test history from the previous identity is not kept."""
        session = make_session(history_indexer=FakeIndexer(mk_records(1)))
        session.create_identity()
        session.create_identity()
        await session.refresh_history()

        session.set_active("0xBBB")
        assert session.history is None


class TestTransfers:
    """Tests for transfers from the active identity."""

    @pytest.mark.asyncio
    async def test_send_native_uses_active_key(self, session, ledger):
        """Test the active identity's key material is passed to the ledger."""
        identity = session.create_identity()
        await session.send_native("0xRECIPIENT", "0.1")

        ledger.submit_native_transfer.assert_awaited_once_with(
            identity.reveal_key_material(), "0xRECIPIENT", "0.1"
        )

    @pytest.mark.asyncio
    async def test_send_token_uses_active_key(self, session, ledger):
        identity = session.create_identity()
        await session.send_token("0xTOKEN", "0xRECIPIENT", "5")

        ledger.submit_token_transfer.assert_awaited_once_with(
            identity.reveal_key_material(), "0xTOKEN", "0xRECIPIENT", "5"
        )

    @pytest.mark.asyncio
    async def test_send_without_identity(self, session):
        """Test sending requires an active identity."""
        with pytest.raises(UnknownIdentity):
            await session.send_native("0xRECIPIENT", "1")


class TestLifecycle:
    """Tests for session resources."""

    @pytest.mark.asyncio
    async def test_context_manager_closes_indexer(self, make_session):
        """Test leaving the context closes collaborators."""
        indexer = FakeIndexer()
        session = make_session(history_indexer=indexer)

        async with session:
            pass

        assert indexer.closed

    def test_repr_hides_secrets(self, session):
        """Test repr shows counts only."""
        identity = session.create_identity()
        assert identity.reveal_key_material() not in repr(session)
