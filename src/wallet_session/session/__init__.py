"""
Connected-identity session tracking.
"""

from .connector import ConnectorEvent, ConnectorEventType, WalletConnector
from .coordinator import SessionCoordinator

__all__ = [
    "ConnectorEvent",
    "ConnectorEventType",
    "WalletConnector",
    "SessionCoordinator",
]
