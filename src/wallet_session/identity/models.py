"""
Identity data model.

ManagedIdentity holds a locally controlled key pair; ConnectedIdentity
tracks an address supplied by an external wallet extension whose key
material is never available here.
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator

from ..keys.derivation import DerivedKey


def short_address(address: str) -> str:
    """Shorten ``0x1234567890...`` to ``0x1234...7890`` for display."""
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


def _clean_name(name: Any) -> Optional[str]:
    if isinstance(name, str) and not name.strip():
        return None
    return name


class ConnectorKind(str, Enum):
    """Which wallet extension supplied a connected identity."""
    NONE = "none"
    EXTENSION_A = "extensionA"
    EXTENSION_B = "extensionB"


class ManagedIdentity(BaseModel):
    """
    A key pair fully controlled by this system.

    Key material and recovery phrase are held as ``SecretStr`` so they never
    appear in ``repr``, ``str`` or log output. Instances are immutable;
    ``with_name`` returns a renamed copy.
    """
    address: str = Field(min_length=1)
    key_material: SecretStr = Field(alias="keyMaterial")
    recovery_phrase: Optional[SecretStr] = Field(default=None, alias="recoveryPhrase")
    display_name: Optional[str] = Field(default=None, alias="name")

    model_config = {
        "populate_by_name": True,
        "frozen": True,
    }

    @field_validator("display_name", mode="before")
    @classmethod
    def blank_name_is_none(cls, v: Any) -> Optional[str]:
        return _clean_name(v)

    @classmethod
    def from_derived(cls, derived: DerivedKey, name: Optional[str] = None) -> ManagedIdentity:
        """Build an identity from key-derivation output."""
        return cls(
            address=derived.address,
            key_material=derived.key_material,
            recovery_phrase=derived.recovery_phrase,
            display_name=name,
        )

    @property
    def label(self) -> str:
        """Display name, or the shortened address."""
        return self.display_name or short_address(self.address)

    def with_name(self, name: Optional[str]) -> ManagedIdentity:
        """Return a copy with a new display name."""
        return self.model_copy(update={"display_name": _clean_name(name)})

    def reveal_key_material(self) -> str:
        """Plain key material for signing. Never log the result."""
        return self.key_material.get_secret_value()

    def to_record(self) -> Dict[str, Any]:
        """Persisted layout: ``{address, keyMaterial, recoveryPhrase?, name?}``."""
        record: Dict[str, Any] = {
            "address": self.address,
            "keyMaterial": self.key_material.get_secret_value(),
        }
        if self.recovery_phrase is not None:
            record["recoveryPhrase"] = self.recovery_phrase.get_secret_value()
        if self.display_name is not None:
            record["name"] = self.display_name
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> ManagedIdentity:
        """Create from the persisted layout."""
        return cls.model_validate(record)

    def __str__(self) -> str:
        return f"ManagedIdentity({self.label})"


class ConnectedIdentity(BaseModel):
    """
    Address supplied by an external wallet extension.

    ``live`` is False until the connector confirms the address in the
    current run.
    """
    address: str = Field(min_length=1)
    connector_kind: ConnectorKind = Field(default=ConnectorKind.NONE, alias="kind")
    live: bool = False

    model_config = {
        "populate_by_name": True,
        "frozen": True,
    }

    @property
    def label(self) -> str:
        return short_address(self.address)

    def to_record(self) -> Dict[str, Any]:
        """Persisted layout: ``{address, kind}``. ``live`` is never stored."""
        return {"address": self.address, "kind": self.connector_kind.value}

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> ConnectedIdentity:
        """Create from the persisted layout with ``live`` forced to False."""
        return cls(
            address=record["address"],
            connector_kind=ConnectorKind(record.get("kind", ConnectorKind.NONE.value)),
            live=False,
        )


__all__ = [
    "ConnectorKind",
    "ManagedIdentity",
    "ConnectedIdentity",
    "short_address",
]
