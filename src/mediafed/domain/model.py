"""Value types shared by the federation core."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import NamedTuple

DEFAULT_PEER_PORT = 8096


@dataclass(frozen=True, slots=True)
class PeerDescriptor:
    """A federated server as configured by an operator.

    ``base_address`` may be scheme-less; it is normalised on every use. ``port`` is
    informational only, the effective port lives inside the address.
    """

    base_address: str
    credential: str = field(default="", repr=False)
    port: int = DEFAULT_PEER_PORT

    @property
    def has_credential(self) -> bool:
        return bool(self.credential.strip())

    def credential_preview(self) -> str | None:
        if not self.credential:
            return None
        if len(self.credential) > 8:
            return self.credential[:8] + "..."
        return "***"


@dataclass(frozen=True, slots=True)
class FederationPolicy:
    enable_federation: bool = True
    client_mode_enabled: bool = True
    server_mode_enabled: bool = True
    require_https: bool = True
    admin_only_changes: bool = True


@dataclass(frozen=True, slots=True)
class RemoteCatalogItem:
    remote_id: str
    display_name: str
    media_kind: str | None = None


class AggregateKey(NamedTuple):
    peer_address: str
    remote_id: str


@dataclass(frozen=True, slots=True)
class AggregateEntry:
    peer_address: str
    remote_id: str
    display_name: str
    media_kind: str | None = None

    @property
    def key(self) -> AggregateKey:
        return AggregateKey(self.peer_address, self.remote_id)

    @classmethod
    def from_item(cls, peer_address: str, item: RemoteCatalogItem) -> AggregateEntry:
        return cls(
            peer_address=peer_address,
            remote_id=item.remote_id,
            display_name=item.display_name,
            media_kind=item.media_kind,
        )


@dataclass(frozen=True, slots=True)
class ProbeResult:
    reachable: bool
    status_summary: str
    body_preview: str = ""


class MergeStatus(StrEnum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class MergeOutcome:
    """Result of one merge pass.

    ``per_peer`` maps each peer (normalised address, or the raw address when it
    failed validation) to the number of entries it contributed.
    """

    status: MergeStatus
    total_items: int = 0
    reason: str | None = None
    per_peer: dict[str, int] = field(default_factory=dict)

    @classmethod
    def completed(cls, total_items: int, per_peer: dict[str, int]) -> MergeOutcome:
        return cls(MergeStatus.COMPLETED, total_items=total_items, per_peer=per_peer)

    @classmethod
    def skipped(cls, reason: str) -> MergeOutcome:
        return cls(MergeStatus.SKIPPED, reason=reason)

    @classmethod
    def cancelled(
        cls, total_items: int = 0, per_peer: dict[str, int] | None = None
    ) -> MergeOutcome:
        return cls(
            MergeStatus.CANCELLED,
            total_items=total_items,
            reason="cancelled",
            per_peer=per_peer or {},
        )
