"""
State storage backends.

Stores hold one serialized session document. They deal in raw text only;
decoding and corruption handling live in the persistence gateway.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union
import logging
import os
import tempfile

logger = logging.getLogger(__name__)


class StateStore(ABC):
    """
    Abstract state store interface.
    """

    @abstractmethod
    def read(self) -> Optional[str]:
        """
        Read the stored document.

        Returns:
            Document text, or None if nothing has been stored

        Raises:
            OSError: If the backing storage cannot be read
        """
        pass

    @abstractmethod
    def write(self, document: str):
        """
        Replace the stored document.

        Args:
            document: Serialized session state
        """
        pass

    @abstractmethod
    def clear(self) -> bool:
        """
        Delete the stored document.

        Returns:
            True if something was deleted
        """
        pass


class MemoryStateStore(StateStore):
    """
    In-memory state store.

    Keeps the document in memory with no persistence across processes.
    """

    def __init__(self, document: Optional[str] = None):
        self._document = document
        self.write_count = 0

    def read(self) -> Optional[str]:
        return self._document

    def write(self, document: str):
        self._document = document
        self.write_count += 1

    def clear(self) -> bool:
        existed = self._document is not None
        self._document = None
        return existed

    def __repr__(self) -> str:
        return f"MemoryStateStore(stored={self._document is not None})"


class FileStateStore(StateStore):
    """
    File-based state store.

    Writes go to a temporary file in the same directory which then
    atomically replaces the target, so a crash mid-write never leaves a
    truncated document. The file holds key material and is created with
    owner-only permissions.
    """

    FILE_MODE = 0o600

    def __init__(self, path: Union[str, Path]):
        """
        Initialize file state store.

        Args:
            path: Path of the state document
        """
        self.path = Path(path).expanduser()

    def read(self) -> Optional[str]:
        if not self.path.exists():
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return f.read()

    def write(self, document: str):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, self.FILE_MODE)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug(f"Wrote session state to {self.path}")

    def clear(self) -> bool:
        if self.path.exists():
            self.path.unlink()
            logger.debug(f"Deleted session state {self.path}")
            return True
        return False

    def __repr__(self) -> str:
        return f"FileStateStore(path='{self.path}')"


__all__ = [
    "StateStore",
    "MemoryStateStore",
    "FileStateStore",
]
