"""
Managed identity registry.

Provides the identity data model and the registry that owns the active
identity pointer.
"""

from .models import ConnectorKind, ManagedIdentity, ConnectedIdentity, short_address
from .registry import IdentityRegistry, RegistryState

__all__ = [
    "ConnectorKind",
    "ManagedIdentity",
    "ConnectedIdentity",
    "IdentityRegistry",
    "RegistryState",
    "short_address",
]
