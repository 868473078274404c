"""Port for talking to federated peers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mediafed.domain.model import PeerDescriptor, ProbeResult, RemoteCatalogItem


@runtime_checkable
class PeerCatalogClient(Protocol):
    """Async access to one peer at a time.

    Implementations never raise for per-peer failures: ``probe`` folds them into
    an unreachable :class:`ProbeResult` and ``fetch_catalog`` returns an empty list.
    """

    async def probe(self, peer: PeerDescriptor, *, require_https: bool) -> ProbeResult: ...

    async def fetch_catalog(
        self, peer: PeerDescriptor, *, require_https: bool
    ) -> list[RemoteCatalogItem]: ...


__all__ = ["PeerCatalogClient"]
