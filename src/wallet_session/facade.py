"""
Wallet Session Facade.

``WalletSession`` is the per-session context object that ties together the
identity registry, the session coordinator, the persistence gateway, the
history engine and the ledger client. It is the primary entry point.

Example:
    ```python
    from wallet_session import WalletSession, SessionConfig

    async with WalletSession.open(SessionConfig.from_env()) as session:
        identity = session.create_identity(name="Main")
        result = await session.refresh_history()
        balance = await session.ledger.get_native_balance(identity.address)
    ```
"""

from __future__ import annotations
from typing import Optional
import logging

from .config import SessionConfig
from .history.engine import HistoryEngine
from .history.indexer import TransferIndexer
from .history.models import HistoryResult
from .identity.models import ConnectedIdentity, ConnectorKind, ManagedIdentity
from .identity.registry import IdentityRegistry
from .keys.derivation import KeyDerivation
from .ledger.client import JsonRpcLedgerClient, LedgerClient, TxHandle
from .persistence.gateway import PersistenceGateway, SessionSnapshot
from .persistence.stores import FileStateStore, StateStore
from .runtime.errors import UnknownIdentity
from .session.connector import ConnectorEvent, WalletConnector
from .session.coordinator import SessionCoordinator

logger = logging.getLogger(__name__)


class WalletSession:
    """
    Wallet identity and session manager.

    Every mutating operation is followed by an explicit save of the full
    session snapshot. Managed and connected identities are independent
    tracks; connecting an extension never changes the active managed
    identity.

    Attributes:
        registry: Managed identities and the active pointer
        coordinator: The externally connected identity
        gateway: Persistence gateway
        history_engine: Transfer history retrieval
        ledger: Ledger query client
        history: Last history result applied for the active identity
    """

    def __init__(
        self,
        registry: Optional[IdentityRegistry] = None,
        coordinator: Optional[SessionCoordinator] = None,
        gateway: Optional[PersistenceGateway] = None,
        history_engine: Optional[HistoryEngine] = None,
        ledger: Optional[LedgerClient] = None,
        config: Optional[SessionConfig] = None
    ):
        """
        Initialize a session from its collaborators.

        Nothing is loaded; use ``open`` or call ``load`` to restore
        persisted state.
        """
        # An empty registry is falsy
        self.config = config if config is not None else SessionConfig()
        self.registry = registry if registry is not None else IdentityRegistry()
        self.coordinator = coordinator if coordinator is not None else SessionCoordinator()
        self.gateway = gateway if gateway is not None else PersistenceGateway()
        if history_engine is None:
            history_engine = HistoryEngine.from_config(self.config)
        self.history_engine = history_engine
        self.ledger = ledger if ledger is not None else JsonRpcLedgerClient.from_config(self.config)
        self.history: Optional[HistoryResult] = None

    @classmethod
    def open(
        cls,
        config: Optional[SessionConfig] = None,
        store: Optional[StateStore] = None,
        derivation: Optional[KeyDerivation] = None,
        indexer: Optional[TransferIndexer] = None,
        ledger: Optional[LedgerClient] = None
    ) -> WalletSession:
        """
        Create a session and restore its persisted state.

        Args:
            config: Session configuration (defaults apply if not provided)
            store: State store (a file store at ``config.state_path`` by default)
            derivation: Key-derivation collaborator
            indexer: Transfer indexer for history retrieval
            ledger: Ledger query client

        Returns:
            Session with identities and any connection restored
        """
        config = config if config is not None else SessionConfig()
        config.apply_logging()
        session = cls(
            registry=IdentityRegistry(derivation),
            gateway=PersistenceGateway(store if store is not None else FileStateStore(config.state_path)),
            history_engine=HistoryEngine.from_config(config, indexer),
            ledger=ledger,
            config=config,
        )
        session.load()
        return session

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        """Release network resources held by the collaborators."""
        await self.history_engine.aclose()
        close = getattr(self.ledger, "close", None)
        if close is not None:
            close()

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self):
        """Replace in-memory state with the stored snapshot."""
        snapshot = self.gateway.load()
        self.registry.restore(snapshot.identities, snapshot.active_address)
        self.coordinator.restore(snapshot.connected)
        self.history = None

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            identities=self.registry.identities,
            active_address=self.registry.active_address,
            connected=self.coordinator.connected,
        )

    def _save(self):
        self.gateway.save(self.snapshot())

    def _after_mutation(self, changed: bool, active_before: Optional[str]) -> bool:
        if self.registry.active_address != active_before:
            self.history = None
        if changed:
            self._save()
        return changed

    # =========================================================================
    # Managed identities
    # =========================================================================

    @property
    def identities(self):
        return self.registry.identities

    @property
    def active_identity(self) -> Optional[ManagedIdentity]:
        return self.registry.active_identity

    @property
    def connected(self) -> Optional[ConnectedIdentity]:
        return self.coordinator.connected

    def create_identity(self, name: Optional[str] = None) -> ManagedIdentity:
        """
        Generate a new identity and add it to the registry.

        Returns:
            The new identity, including its recovery phrase
        """
        identity = self.registry.create_identity()
        self.add_identity(identity, name)
        return self.registry.get(identity.address)

    def import_identity(self, secret: str, name: Optional[str] = None) -> ManagedIdentity:
        """
        Import from a recovery phrase or raw key material and add it.

        Raises:
            InvalidRecoveryPhrase: If a phrase fails validation
            InvalidKeyMaterial: If raw key material is malformed
        """
        identity = self.registry.import_identity(secret)
        self.add_identity(identity, name)
        return self.registry.get(identity.address)

    def add_identity(self, identity: ManagedIdentity, name: Optional[str] = None) -> bool:
        active_before = self.registry.active_address
        return self._after_mutation(self.registry.add_identity(identity, name), active_before)

    def remove_identity(self, address: str) -> bool:
        active_before = self.registry.active_address
        return self._after_mutation(self.registry.remove_identity(address), active_before)

    def set_active(self, address: str) -> bool:
        """
        Raises:
            UnknownIdentity: If the address is not in the registry
        """
        active_before = self.registry.active_address
        return self._after_mutation(self.registry.set_active(address), active_before)

    def rename_identity(self, address: str, name: Optional[str]) -> bool:
        active_before = self.registry.active_address
        return self._after_mutation(self.registry.rename_identity(address, name), active_before)

    # =========================================================================
    # Connected identity
    # =========================================================================

    def apply_connector_event(self, event: ConnectorEvent) -> bool:
        """
        Apply an event emitted by a wallet extension.

        The event must be numbered with ``coordinator.next_sequence()`` when
        the extension callback fires.
        """
        changed = self.coordinator.apply(event)
        if changed:
            self._save()
        return changed

    async def connect(self, connector: WalletConnector, kind: Optional[ConnectorKind] = None) -> bool:
        """
        Request account access from a wallet extension.

        Raises:
            UserRejected: If the user declined
            ProviderUnavailable: If the extension is absent or faulted
        """
        changed = await self.coordinator.connect(connector, kind)
        if changed:
            self._save()
        return changed

    async def revalidate(self, connector: WalletConnector) -> bool:
        """
        Confirm a restored connection with the extension.

        A connector failure clears the stale connection (and saves that)
        before propagating.
        """
        before = self.coordinator.connected
        try:
            changed = await self.coordinator.revalidate(connector)
        except Exception:
            if self.coordinator.connected != before:
                self._save()
            raise
        if changed:
            self._save()
        return changed

    def disconnect(self) -> bool:
        changed = self.coordinator.disconnect()
        if changed:
            self._save()
        return changed

    # =========================================================================
    # History
    # =========================================================================

    async def refresh_history(self) -> Optional[HistoryResult]:
        """
        Fetch history for the active identity and apply it.

        The result is applied only if the active identity is unchanged when
        the fetch completes.

        Returns:
            The applied result, or None if there is no active identity or the
            result was discarded as stale
        """
        address = self.registry.active_address
        if address is None:
            return None

        result = await self.history_engine.fetch_history(address)

        if self.registry.active_address != address:
            logger.info(f"Discarding history for {address}; active identity changed")
            return None
        self.history = result
        return result

    # =========================================================================
    # Transfers
    # =========================================================================

    def _require_active(self) -> ManagedIdentity:
        identity = self.registry.active_identity
        if identity is None:
            raise UnknownIdentity("No active identity")
        return identity

    async def send_native(self, to: str, amount: str) -> TxHandle:
        """
        Transfer ether from the active identity.

        Raises:
            UnknownIdentity: If there is no active identity
            InvalidAddress: If the recipient is malformed
            ValidationError: If the amount is invalid
            LedgerError: If the node rejects the transaction
        """
        identity = self._require_active()
        return await self.ledger.submit_native_transfer(identity.reveal_key_material(), to, amount)

    async def send_token(self, token: str, to: str, amount: str) -> TxHandle:
        """Transfer an ERC-20 token from the active identity."""
        identity = self._require_active()
        return await self.ledger.submit_token_transfer(identity.reveal_key_material(), token, to, amount)

    def __repr__(self) -> str:
        return (
            f"WalletSession(identities={len(self.registry)}, "
            f"active='{self.registry.active_address}', connected={self.coordinator.connected is not None})"
        )


__all__ = ["WalletSession"]
