"""Merge passes: fold every peer's catalog into the aggregate store."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .addresses import normalize_peer_address
from .errors import AddressError
from .model import AggregateEntry, MergeOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .aggregate import AggregateStore
    from .model import FederationPolicy, PeerDescriptor, RemoteCatalogItem
    from .ports.peers import PeerCatalogClient

log = getLogger(__name__)

DEFAULT_FETCH_CONCURRENCY = 4


@dataclass(frozen=True, slots=True)
class MergeContext:
    """Policy and peer list as they were when the pass was requested."""

    policy: FederationPolicy
    peers: tuple[PeerDescriptor, ...] = ()

    @classmethod
    def of(cls, policy: FederationPolicy, peers: Sequence[PeerDescriptor]) -> MergeContext:
        return cls(policy=policy, peers=tuple(peers))


@dataclass(slots=True)
class _PeerTarget:
    peer: PeerDescriptor
    address: str | None
    task: asyncio.Task[list[RemoteCatalogItem]] | None = None


def _is_set(cancel: asyncio.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


class MergeCoordinator:
    """Runs merge passes behind a single-flight gate.

    At most one pass touches the store at a time; a second caller waits for the
    gate (bounded by ``gate_timeout_seconds`` and the cancel signal) instead of
    running concurrently. Within a pass peers are fetched concurrently, up to
    ``fetch_concurrency`` at once, but folded into the store in configured order.
    """

    def __init__(
        self,
        *,
        client: PeerCatalogClient,
        store: AggregateStore,
        fetch_concurrency: int = DEFAULT_FETCH_CONCURRENCY,
        gate_timeout_seconds: float | None = None,
    ) -> None:
        if fetch_concurrency < 1:
            raise ValueError("fetch_concurrency must be at least 1")
        self._client = client
        self._store = store
        self._fetch_concurrency = fetch_concurrency
        self._gate_timeout_seconds = gate_timeout_seconds
        self._gate = asyncio.Lock()
        self.last_outcome: MergeOutcome | None = None
        self.last_completed_at: float | None = None

    @property
    def store(self) -> AggregateStore:
        return self._store

    @property
    def in_progress(self) -> bool:
        return self._gate.locked()

    async def run_merge_pass(
        self,
        context: MergeContext,
        *,
        cancel: asyncio.Event | None = None,
    ) -> MergeOutcome:
        policy = context.policy
        if not policy.enable_federation or not policy.client_mode_enabled:
            log.info("Aggregation skipped: federation or client mode disabled")
            return MergeOutcome.skipped("federation disabled")
        if not context.peers:
            log.info("Aggregation skipped: no peers configured")
            return MergeOutcome.skipped("no peers")
        if _is_set(cancel):
            return MergeOutcome.cancelled()

        if not await self._acquire_gate(cancel):
            if _is_set(cancel):
                log.info("Merge pass cancelled while waiting for the gate")
                return MergeOutcome.cancelled()
            log.warning(
                "Merge gate still busy after %ss; dropping request", self._gate_timeout_seconds
            )
            return MergeOutcome.skipped("merge gate busy")

        try:
            outcome = await self._merge_locked(context, cancel)
        finally:
            self._gate.release()

        self.last_outcome = outcome
        self.last_completed_at = time.time()
        return outcome

    async def _acquire_gate(self, cancel: asyncio.Event | None) -> bool:
        if cancel is None and self._gate_timeout_seconds is None:
            await self._gate.acquire()
            return True

        acquire = asyncio.ensure_future(self._gate.acquire())
        watcher = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
        waiters: set[asyncio.Future[bool]] = {acquire}
        if watcher is not None:
            waiters.add(watcher)
        try:
            await asyncio.wait(
                waiters,
                timeout=self._gate_timeout_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except BaseException:
            # the gate can be granted in the same step this task is cancelled
            if acquire.done() and not acquire.cancelled():
                self._gate.release()
            raise
        finally:
            if watcher is not None:
                watcher.cancel()
            if not acquire.done():
                acquire.cancel()
        return acquire.done() and not acquire.cancelled()

    async def _merge_locked(
        self,
        context: MergeContext,
        cancel: asyncio.Event | None,
    ) -> MergeOutcome:
        if _is_set(cancel):
            return MergeOutcome.cancelled()

        started = time.monotonic()
        require_https = context.policy.require_https
        self._store.clear()

        semaphore = asyncio.Semaphore(self._fetch_concurrency)

        async def fetch(peer: PeerDescriptor) -> list[RemoteCatalogItem]:
            async with semaphore:
                if _is_set(cancel):
                    return []
                return await self._client.fetch_catalog(peer, require_https=require_https)

        targets = [self._target(peer, require_https) for peer in context.peers]
        for target in targets:
            if target.address is not None:
                target.task = asyncio.create_task(fetch(target.peer))

        per_peer: dict[str, int] = {}
        try:
            for target in targets:
                if _is_set(cancel):
                    log.info(
                        "Merge pass cancelled after %s peers; keeping %s partial entries",
                        len(per_peer),
                        len(self._store),
                    )
                    return MergeOutcome.cancelled(len(self._store), per_peer)
                if target.address is None or target.task is None:
                    per_peer[target.peer.base_address] = 0
                    continue
                items = await self._collect(target)
                merged = self._fold(target.address, items)
                per_peer[target.address] = merged
                log.info("Aggregated %s items from %s", merged, target.address)
        finally:
            await self._reap(targets)

        total = len(self._store)
        log.info(
            "Merge pass completed: %s entries from %s peers in %.2fs",
            total,
            len(per_peer),
            time.monotonic() - started,
        )
        return MergeOutcome.completed(total, per_peer)

    @staticmethod
    def _target(peer: PeerDescriptor, require_https: bool) -> _PeerTarget:
        try:
            address = normalize_peer_address(peer.base_address, require_https=require_https)
        except AddressError as exc:
            log.warning("Skipping peer %r: %s", peer.base_address, exc)
            return _PeerTarget(peer=peer, address=None)
        return _PeerTarget(peer=peer, address=address)

    @staticmethod
    async def _collect(target: _PeerTarget) -> list[RemoteCatalogItem]:
        if target.task is None:
            return []
        try:
            return await target.task
        except Exception:
            log.exception("Catalog fetch failed unexpectedly for %s", target.address)
            return []

    def _fold(self, address: str, items: Sequence[RemoteCatalogItem]) -> int:
        merged = 0
        for item in items:
            if not item.remote_id:
                continue
            entry = AggregateEntry.from_item(address, item)
            self._store.put(entry.key, entry)
            merged += 1
        return merged

    @staticmethod
    async def _reap(targets: Sequence[_PeerTarget]) -> None:
        tasks = [t.task for t in targets if t.task is not None]
        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
