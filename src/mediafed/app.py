"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING, Any

from mediafed import __version__
from mediafed.adapters.peer import PeerClient
from mediafed.adapters.settings_store import JsonSettingsStore
from mediafed.config.federation import FederationConfig, get_federation_config
from mediafed.domain.aggregate import AggregateStore
from mediafed.domain.errors import MutationForbidden
from mediafed.domain.merge import MergeContext, MergeCoordinator
from mediafed.domain.model import DEFAULT_PEER_PORT, PeerDescriptor
from mediafed.domain.playback import resolve_playback_redirect
from mediafed.domain.scheduling import MergeScheduler, MergeTrigger

if TYPE_CHECKING:
    from mediafed.domain.model import AggregateEntry, FederationPolicy, MergeOutcome, ProbeResult
    from mediafed.domain.ports.peers import PeerCatalogClient
    from mediafed.domain.ports.settings import SettingsRepository

CapabilityCheck = Callable[[], bool]

log = getLogger(__name__)


def public_peer(peer: PeerDescriptor) -> dict[str, Any]:
    """Read-side view of a peer; the credential itself is never returned."""

    return {
        "serverUrl": peer.base_address,
        "port": peer.port,
        "hasApiKey": peer.has_credential,
        "apiKeyPreview": peer.credential_preview(),
    }


def public_entry(entry: AggregateEntry) -> dict[str, Any]:
    return {
        "serverUrl": entry.peer_address,
        "id": entry.remote_id,
        "name": entry.display_name,
        "mediaType": entry.media_kind,
    }


def public_outcome(outcome: MergeOutcome) -> dict[str, Any]:
    return {
        "status": str(outcome.status),
        "totalItems": outcome.total_items,
        "reason": outcome.reason,
        "perPeer": dict(outcome.per_peer),
    }


class FederationService:
    """Wires settings, peer client, aggregate store, coordinator and scheduler.

    Policy and peers are read from the settings repository whenever a pass
    starts; nothing here keeps a process-wide copy of the configuration.
    """

    def __init__(
        self,
        *,
        settings: SettingsRepository,
        client: PeerCatalogClient,
        store: AggregateStore | None = None,
        fetch_concurrency: int = 4,
        gate_timeout_seconds: float | None = None,
    ) -> None:
        self.settings = settings
        self.client = client
        self.store = store or AggregateStore()
        self.coordinator = MergeCoordinator(
            client=client,
            store=self.store,
            fetch_concurrency=fetch_concurrency,
            gate_timeout_seconds=gate_timeout_seconds,
        )
        self.scheduler = MergeScheduler(self.coordinator, self.merge_context)

    def merge_context(self) -> MergeContext:
        snapshot = self.settings.load()
        return MergeContext.of(snapshot.policy, snapshot.peers)

    def policy(self) -> FederationPolicy:
        return self.settings.load().policy

    async def refresh(self, trigger: MergeTrigger = MergeTrigger.MANUAL) -> MergeOutcome:
        return await self.scheduler.trigger(trigger)

    def notify_configuration_changed(self) -> asyncio.Task[MergeOutcome] | None:
        """Queue a merge after a settings change without waiting for it."""

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            log.debug("No running event loop; merge will run on the next trigger")
            return None
        return self.scheduler.submit(MergeTrigger.CONFIGURATION_CHANGED)

    def list_aggregate(self) -> tuple[AggregateEntry, ...]:
        return self.store.snapshot()

    async def test_connection(self, address: str, credential: str = "") -> ProbeResult:
        peer = PeerDescriptor(base_address=address, credential=credential or "")
        return await self.client.probe(peer, require_https=self.policy().require_https)

    def resolve_stream(self, peer_address: str | None, remote_item_id: str | None) -> str:
        return resolve_playback_redirect(
            peer_address,
            remote_item_id,
            require_https=self.policy().require_https,
        )

    def list_servers(self) -> list[dict[str, Any]]:
        return [public_peer(peer) for peer in self.settings.load().peers]

    def add_peer(
        self,
        address: str,
        credential: str = "",
        port: int = DEFAULT_PEER_PORT,
        *,
        caller_may_mutate: CapabilityCheck,
    ) -> PeerDescriptor:
        self._require_mutation(caller_may_mutate)
        peer = self.settings.add_peer(address, credential, port)
        self.notify_configuration_changed()
        return peer

    def remove_peer(self, address: str, *, caller_may_mutate: CapabilityCheck) -> PeerDescriptor:
        self._require_mutation(caller_may_mutate)
        peer = self.settings.remove_peer(address)
        self.notify_configuration_changed()
        return peer

    def update_policy(
        self, *, caller_may_mutate: CapabilityCheck, **changes: bool
    ) -> FederationPolicy:
        self._require_mutation(caller_may_mutate)
        policy = self.settings.update_policy(**changes)
        self.notify_configuration_changed()
        return policy

    def status(self) -> dict[str, Any]:
        snapshot = self.settings.load()
        policy = snapshot.policy
        last = self.coordinator.last_outcome
        return {
            "pluginName": "mediafed",
            "pluginVersion": __version__,
            "enableFederation": policy.enable_federation,
            "clientMode": policy.client_mode_enabled,
            "serverMode": policy.server_mode_enabled,
            "requireHttps": policy.require_https,
            "adminOnlyChanges": policy.admin_only_changes,
            "serverCount": len(snapshot.peers),
            "servers": [public_peer(peer) for peer in snapshot.peers],
            "aggregateCount": len(self.store),
            "mergeInProgress": self.coordinator.in_progress,
            "lastMerge": public_outcome(last) if last is not None else None,
            "lastMergeAt": self.coordinator.last_completed_at,
        }

    def _require_mutation(self, caller_may_mutate: CapabilityCheck) -> None:
        if self.policy().admin_only_changes and not caller_may_mutate():
            raise MutationForbidden("Only administrators may change federation settings")


def build_federation_service(
    config: FederationConfig | None = None,
    *,
    client: PeerCatalogClient | None = None,
    settings: SettingsRepository | None = None,
) -> FederationService:
    """Build a service from environment configuration, allowing adapter overrides."""

    effective = config or get_federation_config()
    effective_settings = settings or JsonSettingsStore(effective.storage.settings_path())
    effective_client = client or PeerClient(resilience=effective.resilience)
    log.info(
        "Federation service ready: settings=%s, fetch_concurrency=%s",
        getattr(effective_settings, "path", effective_settings),
        effective.fetch_concurrency,
    )
    return FederationService(
        settings=effective_settings,
        client=effective_client,
        fetch_concurrency=effective.fetch_concurrency,
        gate_timeout_seconds=effective.gate_timeout_seconds,
    )
