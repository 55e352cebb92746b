"""
External wallet connector interface.

A connector wraps a browser wallet extension. It answers ``request`` calls
and emits lifecycle events that the session coordinator reconciles.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from ..identity.models import ConnectorKind

REQUEST_ACCOUNTS = "eth_requestAccounts"
LIST_ACCOUNTS = "eth_accounts"


class ConnectorEventType(Enum):
    """Connector lifecycle event types."""
    CONNECTED = "connected"
    ACCOUNT_CHANGED = "accountChanged"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class ConnectorEvent:
    """
    A connector lifecycle event.

    ``sequence`` is assigned at emission time from
    ``SessionCoordinator.next_sequence`` and increases monotonically; the
    coordinator uses it to apply events in true order regardless of arrival
    order. Sequence numbers from any other counter (such as one kept by the
    extension itself) are not comparable with locally issued ones.
    """
    sequence: int
    type: ConnectorEventType
    address: Optional[str] = None
    kind: ConnectorKind = ConnectorKind.NONE

    @classmethod
    def connected(cls, sequence: int, address: str, kind: ConnectorKind) -> ConnectorEvent:
        return cls(sequence, ConnectorEventType.CONNECTED, address, kind)

    @classmethod
    def account_changed(cls, sequence: int, address: Optional[str]) -> ConnectorEvent:
        return cls(sequence, ConnectorEventType.ACCOUNT_CHANGED, address)

    @classmethod
    def accounts_reported(cls, sequence: int, accounts: Sequence[str]) -> ConnectorEvent:
        """``accountsChanged`` style report; an empty list means disconnected."""
        return cls.account_changed(sequence, accounts[0] if accounts else None)

    @classmethod
    def disconnected(cls, sequence: int) -> ConnectorEvent:
        return cls(sequence, ConnectorEventType.DISCONNECTED)


class WalletConnector(ABC):
    """
    Abstract external wallet connector.

    Implementations raise ``UserRejected`` when the user declines a request
    and ``ProviderUnavailable`` when no extension is present or it faults.
    """

    kind: ConnectorKind = ConnectorKind.NONE

    @abstractmethod
    async def request(self, method: str, params: Optional[Sequence[Any]] = None) -> Any:
        """
        Forward a provider request to the extension.

        Args:
            method: Provider method name, e.g. ``eth_requestAccounts``
            params: Positional method parameters

        Returns:
            Provider result

        Raises:
            UserRejected: If the user declined
            ProviderUnavailable: If the extension is absent or faulted
        """
        pass


__all__ = [
    "ConnectorEventType",
    "ConnectorEvent",
    "WalletConnector",
    "REQUEST_ACCOUNTS",
    "LIST_ACCOUNTS",
]
