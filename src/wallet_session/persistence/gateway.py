"""
Persistence gateway for session state.

Saves and restores ``{identities, activeAddress, connected}`` as a single
JSON document. Loading fails closed: corrupted or unreadable data is logged
and treated as an empty registry, never raised to the caller.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import json
import logging

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from ..identity.models import ConnectedIdentity, ManagedIdentity
from ..runtime.errors import StorageCorruptionError
from .stores import StateStore, MemoryStateStore

logger = logging.getLogger(__name__)

STATE_VERSION = 1


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything that survives a restart."""
    identities: Tuple[ManagedIdentity, ...] = ()
    active_address: Optional[str] = None
    connected: Optional[ConnectedIdentity] = None

    @property
    def is_empty(self) -> bool:
        return not self.identities and self.connected is None

    def to_document(self) -> Dict[str, Any]:
        """Persisted layout."""
        return {
            "version": STATE_VERSION,
            "identities": [identity.to_record() for identity in self.identities],
            "activeAddress": self.active_address,
            "connected": self.connected.to_record() if self.connected else None,
        }


class _ConnectedRecord(BaseModel):
    address: str = Field(min_length=1)
    kind: str = "none"


class _StateDocument(BaseModel):
    version: int
    identities: List[ManagedIdentity] = Field(default_factory=list)
    active_address: Optional[str] = Field(default=None, alias="activeAddress")
    connected: Optional[_ConnectedRecord] = None

    model_config = {"populate_by_name": True}


def decode_snapshot(document: str) -> SessionSnapshot:
    """
    Decode a stored document.

    Args:
        document: JSON text

    Returns:
        Snapshot with ``connected.live`` forced to False

    Raises:
        StorageCorruptionError: If the document cannot be decoded
    """
    try:
        parsed = _StateDocument.model_validate_json(document)
    except PydanticValidationError as e:
        raise StorageCorruptionError("Stored state failed validation", cause=e)

    if parsed.version != STATE_VERSION:
        raise StorageCorruptionError(
            f"Unsupported state version {parsed.version}",
            details={"version": parsed.version}
        )

    connected = None
    if parsed.connected is not None:
        try:
            connected = ConnectedIdentity.from_record(parsed.connected.model_dump())
        except ValueError as e:
            raise StorageCorruptionError("Stored connection is invalid", cause=e)

    return SessionSnapshot(
        identities=tuple(parsed.identities),
        active_address=parsed.active_address,
        connected=connected,
    )


class PersistenceGateway:
    """
    Gateway between the live session and a state store.

    ``save`` is called after every mutating operation (write-on-mutation,
    no batching).
    """

    def __init__(self, store: Optional[StateStore] = None):
        """
        Initialize gateway.

        Args:
            store: Backing store (in-memory if not provided)
        """
        self.store = store if store is not None else MemoryStateStore()

    def save(self, snapshot: SessionSnapshot):
        """
        Persist a snapshot.

        Args:
            snapshot: Session state to store

        Raises:
            OSError: If the store cannot be written
        """
        document = json.dumps(snapshot.to_document(), indent=2)
        self.store.write(document)
        logger.debug(f"Saved session state ({len(snapshot.identities)} identities)")

    def load(self) -> SessionSnapshot:
        """
        Restore the last saved snapshot.

        Returns:
            Stored snapshot, or an empty one if nothing is stored or the
            stored data is unreadable
        """
        try:
            document = self.store.read()
        except (OSError, UnicodeDecodeError) as e:
            self._report(StorageCorruptionError("Stored state is unreadable", cause=e))
            return SessionSnapshot()

        if document is None:
            logger.debug("No stored session state")
            return SessionSnapshot()

        try:
            snapshot = decode_snapshot(document)
        except StorageCorruptionError as e:
            self._report(e)
            return SessionSnapshot()

        logger.info(f"Loaded session state ({len(snapshot.identities)} identities)")
        return snapshot

    def clear(self) -> bool:
        """Delete stored state."""
        return self.store.clear()

    def _report(self, error: StorageCorruptionError):
        logger.warning(f"Resetting to an empty registry: {error}")


__all__ = [
    "PersistenceGateway",
    "SessionSnapshot",
    "decode_snapshot",
    "STATE_VERSION",
]
