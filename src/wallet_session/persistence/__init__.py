"""
Session state persistence.

Provides state stores and the gateway that saves and restores sessions.
"""

from .stores import StateStore, MemoryStateStore, FileStateStore
from .gateway import PersistenceGateway, SessionSnapshot

__all__ = [
    "StateStore",
    "MemoryStateStore",
    "FileStateStore",
    "PersistenceGateway",
    "SessionSnapshot",
]
