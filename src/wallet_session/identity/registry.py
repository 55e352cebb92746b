"""
Identity registry for managed identities.

Owns the ordered set of managed identities and the active-identity pointer.
Every mutation builds a complete new state and swaps it in with a single
assignment, so callers never observe a partially applied change.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple
import logging

from ..keys.derivation import KeyDerivation, EthKeyDerivation, looks_like_phrase
from ..runtime.errors import ErrorCode, UnknownIdentity, WalletSessionError
from .models import ManagedIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryState:
    """Immutable snapshot of the registry."""
    identities: Tuple[ManagedIdentity, ...] = ()
    active_address: Optional[str] = None

    def find(self, address: str) -> Optional[ManagedIdentity]:
        for identity in self.identities:
            if identity.address == address:
                return identity
        return None

    def check_invariants(self):
        """
        Raise if the state is inconsistent.

        The active pointer is None exactly when the registry is empty, and
        otherwise resolves to a present identity. Addresses are unique.
        """
        addresses = [identity.address for identity in self.identities]
        if len(addresses) != len(set(addresses)):
            raise WalletSessionError("Duplicate address in registry", ErrorCode.INTERNAL)
        if self.active_address is None and self.identities:
            raise WalletSessionError("Registry has identities but no active identity", ErrorCode.INTERNAL)
        if self.active_address is not None and self.active_address not in addresses:
            raise WalletSessionError("Active pointer is dangling", ErrorCode.INTERNAL,
                                     details={"address": self.active_address})


class IdentityRegistry:
    """
    Registry of managed identities.

    Maintains insertion order (re-adding an address moves it to the end) and
    an active pointer that is either None (empty registry) or resolves to a
    present identity.
    """

    def __init__(self, derivation: Optional[KeyDerivation] = None):
        """
        Initialize an empty registry.

        Args:
            derivation: Key-derivation collaborator (defaults to Ethereum)
        """
        self.derivation = derivation if derivation is not None else EthKeyDerivation()
        self._state = RegistryState()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def identities(self) -> Tuple[ManagedIdentity, ...]:
        """Managed identities in registry order."""
        return self._state.identities

    @property
    def active_address(self) -> Optional[str]:
        return self._state.active_address

    @property
    def active_identity(self) -> Optional[ManagedIdentity]:
        """The identity the active pointer resolves to, if any."""
        if self._state.active_address is None:
            return None
        return self._state.find(self._state.active_address)

    def get(self, address: str) -> Optional[ManagedIdentity]:
        """
        Look up an identity by address.

        Args:
            address: Identity address

        Returns:
            Identity if found
        """
        return self._state.find(address)

    def addresses(self) -> Tuple[str, ...]:
        return tuple(identity.address for identity in self._state.identities)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and self._state.find(address) is not None

    def __len__(self) -> int:
        return len(self._state.identities)

    def __iter__(self) -> Iterator[ManagedIdentity]:
        return iter(self._state.identities)

    # ------------------------------------------------------------------
    # Identity creation (no registry mutation)
    # ------------------------------------------------------------------

    def create_identity(self) -> ManagedIdentity:
        """
        Generate a fresh identity from new entropy.

        The identity is returned with its secret material but is not added
        to the registry; call ``add_identity`` to keep it.
        """
        return ManagedIdentity.from_derived(self.derivation.generate_identity())

    def import_from_phrase(self, recovery_phrase: str) -> ManagedIdentity:
        """
        Derive an identity from a recovery phrase.

        Raises:
            InvalidRecoveryPhrase: If the phrase fails validation
        """
        return ManagedIdentity.from_derived(self.derivation.derive_from_phrase(recovery_phrase))

    def import_from_key_material(self, raw_key_material: str) -> ManagedIdentity:
        """
        Build an identity from raw key material.

        Raises:
            InvalidKeyMaterial: If the key material is malformed
        """
        return ManagedIdentity.from_derived(self.derivation.derive_from_key_material(raw_key_material))

    def import_identity(self, secret: str) -> ManagedIdentity:
        """
        Import from either a recovery phrase or raw key material.

        A value of several whitespace-separated words is treated as a
        recovery phrase; anything else as raw key material.

        Args:
            secret: Recovery phrase or hex private key

        Returns:
            Derived identity (not yet added)

        Raises:
            InvalidRecoveryPhrase: If a phrase fails validation
            InvalidKeyMaterial: If raw key material is malformed
        """
        if isinstance(secret, str) and looks_like_phrase(secret):
            return self.import_from_phrase(secret)
        return self.import_from_key_material(secret)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _commit(self, identities: Tuple[ManagedIdentity, ...], active_address: Optional[str]):
        new_state = RegistryState(identities=identities, active_address=active_address)
        new_state.check_invariants()
        self._state = new_state

    def add_identity(self, identity: ManagedIdentity, name: Optional[str] = None) -> bool:
        """
        Insert an identity at the end of the registry.

        An existing entry with the same address is removed first, so
        re-adding moves it to the end. The first identity added to an empty
        registry becomes active; otherwise the active pointer is unchanged.

        Args:
            identity: Identity to insert
            name: Optional display name to apply

        Returns:
            True (the registry always changes)
        """
        if name is not None:
            identity = identity.with_name(name)

        current = self._state
        remaining = tuple(i for i in current.identities if i.address != identity.address)
        identities = remaining + (identity,)
        active = current.active_address if current.active_address is not None else identity.address

        self._commit(identities, active)
        logger.debug(f"Added identity {identity.label} ({len(identities)} total)")
        return True

    def remove_identity(self, address: str) -> bool:
        """
        Remove an identity.

        If the removed identity was active, the first remaining identity
        becomes active, or None when the registry is now empty.

        Args:
            address: Identity address

        Returns:
            True if an identity was removed
        """
        current = self._state
        if current.find(address) is None:
            return False

        identities = tuple(i for i in current.identities if i.address != address)
        active = current.active_address
        if active == address:
            active = identities[0].address if identities else None

        self._commit(identities, active)
        logger.debug(f"Removed identity {address}; active is now {active}")
        return True

    def set_active(self, address: str) -> bool:
        """
        Point the active pointer at an existing identity.

        Args:
            address: Identity address

        Returns:
            True if the active identity changed

        Raises:
            UnknownIdentity: If the address is not in the registry
        """
        current = self._state
        if current.find(address) is None:
            raise UnknownIdentity(f"No managed identity with address {address}",
                                  details={"address": address})
        if current.active_address == address:
            return False

        self._commit(current.identities, address)
        logger.debug(f"Active identity set to {address}")
        return True

    def rename_identity(self, address: str, name: Optional[str]) -> bool:
        """
        Change an identity's display name in place (order is kept).

        Args:
            address: Identity address
            name: New display name (None or blank clears it)

        Returns:
            True if an identity was renamed
        """
        current = self._state
        if current.find(address) is None:
            return False

        identities = tuple(
            i.with_name(name) if i.address == address else i
            for i in current.identities
        )
        self._commit(identities, current.active_address)
        logger.debug(f"Renamed identity {address}")
        return True

    def restore(self, identities: Iterable[ManagedIdentity], active_address: Optional[str]):
        """
        Replace the whole registry from persisted state.

        Duplicate addresses keep their last occurrence. A missing or
        dangling active pointer falls back to the first identity.
        """
        ordered: list[ManagedIdentity] = []
        for identity in identities:
            ordered = [i for i in ordered if i.address != identity.address]
            ordered.append(identity)

        addresses = {i.address for i in ordered}
        if active_address not in addresses:
            if active_address is not None:
                logger.warning(f"Stored active identity {active_address} is missing; resetting")
            active_address = ordered[0].address if ordered else None

        self._commit(tuple(ordered), active_address)
        logger.info(f"Restored {len(ordered)} managed identities")

    def clear(self) -> bool:
        """Remove every identity."""
        if not self._state.identities:
            return False
        self._commit((), None)
        return True

    def __str__(self) -> str:
        return f"IdentityRegistry({len(self)} identities, active={self.active_address})"

    def __repr__(self) -> str:
        return f"IdentityRegistry(identities={len(self)}, active='{self.active_address}')"


__all__ = [
    "IdentityRegistry",
    "RegistryState",
]
