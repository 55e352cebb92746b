"""
Session coordinator for the externally connected identity.

Tracks at most one connected identity and reconciles connector events that
may arrive out of order. The connected identity is an independent track
from the managed active identity and is never promoted to it.
"""

from __future__ import annotations
from typing import Optional
import logging

from ..identity.models import ConnectedIdentity, ConnectorKind
from ..runtime.errors import ConnectorError, ProviderUnavailable
from .connector import (
    ConnectorEvent,
    ConnectorEventType,
    WalletConnector,
    REQUEST_ACCOUNTS,
    LIST_ACCOUNTS,
)

logger = logging.getLogger(__name__)


def _first_account(result) -> Optional[str]:
    if not isinstance(result, (list, tuple)):
        raise ProviderUnavailable("Provider returned an unexpected accounts response",
                                  details={"result": repr(result)})
    return result[0] if result else None


class SessionCoordinator:
    """
    Coordinator for the single externally connected identity.

    Events carry a sequence number; an event whose sequence is lower than
    the last applied one is discarded. Local operations and extension
    callbacks share one ordering, so every event must be numbered by
    ``next_sequence`` at the moment it is emitted. ``disconnected`` and empty
    account reports clear the connection entirely rather than marking it
    non-live.
    """

    def __init__(self):
        """Initialize with no connected identity."""
        self._connected: Optional[ConnectedIdentity] = None
        self._last_sequence: Optional[int] = None
        self._issued = 0

    @property
    def connected(self) -> Optional[ConnectedIdentity]:
        return self._connected

    @property
    def is_live(self) -> bool:
        """True when a connection is present and confirmed this run."""
        return self._connected is not None and self._connected.live

    @property
    def last_sequence(self) -> Optional[int]:
        return self._last_sequence

    def next_sequence(self) -> int:
        """
        Issue a sequence number for a locally originated event.

        Always greater than anything issued or applied so far.
        """
        floor = self._last_sequence if self._last_sequence is not None else 0
        self._issued = max(self._issued, floor) + 1
        return self._issued

    def _set(self, connected: Optional[ConnectedIdentity]) -> bool:
        changed = connected != self._connected
        self._connected = connected
        return changed

    def apply(self, event: ConnectorEvent) -> bool:
        """
        Apply a connector event.

        Args:
            event: Connector lifecycle event

        Returns:
            True if the connected identity changed
        """
        if self._last_sequence is not None and event.sequence < self._last_sequence:
            logger.debug(
                f"Discarding stale {event.type.value} event "
                f"(sequence {event.sequence} < {self._last_sequence})"
            )
            return False
        self._last_sequence = event.sequence

        if event.type == ConnectorEventType.DISCONNECTED or not event.address:
            if self._connected is not None:
                logger.info(f"Connected identity {self._connected.label} cleared")
            return self._set(None)

        if event.type == ConnectorEventType.CONNECTED:
            logger.info(f"Connected identity {event.address} via {event.kind.value}")
            return self._set(ConnectedIdentity(
                address=event.address,
                connector_kind=event.kind,
                live=True,
            ))

        # ACCOUNT_CHANGED
        if self._connected is None:
            logger.debug(f"Ignoring account change to {event.address} with no connection")
            return False
        logger.info(f"Connected account changed to {event.address}")
        return self._set(ConnectedIdentity(
            address=event.address,
            connector_kind=self._connected.connector_kind,
            live=True,
        ))

    def restore(self, connected: Optional[ConnectedIdentity]):
        """
        Restore a persisted connection.

        The restored identity is never live; ``revalidate`` must confirm it.
        """
        if connected is not None and connected.live:
            connected = connected.model_copy(update={"live": False})
        self._connected = connected

    def disconnect(self) -> bool:
        """User-initiated disconnect."""
        return self.apply(ConnectorEvent.disconnected(self.next_sequence()))

    async def connect(self, connector: WalletConnector, kind: Optional[ConnectorKind] = None) -> bool:
        """
        Ask the connector for account access and record the result.

        Args:
            connector: Wallet extension connector
            kind: Connector kind to record (defaults to ``connector.kind``)

        Returns:
            True if the connected identity changed

        Raises:
            UserRejected: If the user declined the request
            ProviderUnavailable: If the extension is absent or faulted
        """
        accounts = await connector.request(REQUEST_ACCOUNTS)
        address = _first_account(accounts)
        # Sequence is taken on completion, so events emitted while the
        # request was pending are ordered before this one.
        sequence = self.next_sequence()
        if address is None:
            return self.apply(ConnectorEvent.disconnected(sequence))
        return self.apply(ConnectorEvent.connected(sequence, address, kind or connector.kind))

    async def revalidate(self, connector: WalletConnector) -> bool:
        """
        Confirm a restored connection against the extension.

        The connection becomes live if the extension still authorises the
        address; otherwise it is cleared. A connector failure clears the
        stale connection and propagates.

        Returns:
            True if the connected identity changed
        """
        if self._connected is None:
            return False

        sequence_before = self._last_sequence
        try:
            accounts = await connector.request(LIST_ACCOUNTS)
            if not isinstance(accounts, (list, tuple)):
                raise ProviderUnavailable("Provider returned an unexpected accounts response")
        except ConnectorError:
            if self._last_sequence == sequence_before:
                self._set(None)
            raise

        if self._last_sequence != sequence_before or self._connected is None:
            logger.debug("Connection changed during revalidation; result discarded")
            return False

        authorised = [a.lower() for a in accounts if isinstance(a, str)]
        if self._connected.address.lower() in authorised:
            logger.info(f"Connected identity {self._connected.label} revalidated")
            return self._set(self._connected.model_copy(update={"live": True}))

        logger.info(f"Connected identity {self._connected.label} no longer authorised")
        return self._set(None)

    def __str__(self) -> str:
        if self._connected is None:
            return "SessionCoordinator(disconnected)"
        state = "live" if self._connected.live else "pending"
        return f"SessionCoordinator({self._connected.label}, {state})"


__all__ = ["SessionCoordinator"]
