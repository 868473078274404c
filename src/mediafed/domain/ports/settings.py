"""Port for the federation configuration boundary."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mediafed.domain.model import FederationPolicy, PeerDescriptor


@runtime_checkable
class FederationSettingsSnapshot(Protocol):
    policy: FederationPolicy
    peers: tuple[PeerDescriptor, ...]


@runtime_checkable
class SettingsRepository(Protocol):
    """Owner of the peer list and policy flags; the core only reads a snapshot per pass."""

    def load(self) -> FederationSettingsSnapshot: ...

    def add_peer(self, address: str, credential: str = "", port: int = ...) -> PeerDescriptor: ...

    def remove_peer(self, address: str) -> PeerDescriptor: ...

    def update_policy(self, **changes: bool) -> FederationPolicy: ...


__all__ = ["FederationSettingsSnapshot", "SettingsRepository"]
