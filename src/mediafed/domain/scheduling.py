"""Merge triggers: submit passes to the coordinator and await or forget them."""

from __future__ import annotations

import asyncio
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

    from .merge import MergeContext, MergeCoordinator
    from .model import MergeOutcome

log = getLogger(__name__)


class MergeTrigger(StrEnum):
    STARTUP = "startup"
    CONFIGURATION_CHANGED = "configuration-changed"
    MANUAL = "manual"
    SCHEDULED = "scheduled"


class MergeScheduler:
    """Entry point for every merge trigger.

    ``submit`` returns the task running the pass; callers may await it or drop it.
    Dropped tasks are still tracked so failures get logged and ``shutdown`` can
    cancel them. The single-flight gate lives in the coordinator, so the way a
    caller chooses to wait never changes the mutual exclusion.
    """

    def __init__(
        self,
        coordinator: MergeCoordinator,
        context_provider: Callable[[], MergeContext],
    ) -> None:
        self._coordinator = coordinator
        self._context_provider = context_provider
        self._pending: set[asyncio.Task[MergeOutcome]] = set()
        self._cancel = asyncio.Event()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, trigger: MergeTrigger = MergeTrigger.MANUAL) -> asyncio.Task[MergeOutcome]:
        task = asyncio.create_task(self._run(trigger), name=f"merge-pass:{trigger}")
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def trigger(self, trigger: MergeTrigger = MergeTrigger.MANUAL) -> MergeOutcome:
        return await self.submit(trigger)

    async def run_periodic(self, interval_seconds: float, stop: asyncio.Event) -> None:
        """Trigger a pass every ``interval_seconds`` until ``stop`` is set."""

        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
            except TimeoutError:
                try:
                    await self.trigger(MergeTrigger.SCHEDULED)
                except Exception:
                    log.exception("Scheduled merge pass failed")

    async def shutdown(self) -> None:
        """Signal cancellation to in-flight passes and wait for them to settle."""

        self._cancel.set()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._cancel = asyncio.Event()

    async def _run(self, trigger: MergeTrigger) -> MergeOutcome:
        context = self._context_provider()
        log.info("Merge pass requested (%s) for %s peers", trigger, len(context.peers))
        outcome = await self._coordinator.run_merge_pass(context, cancel=self._cancel)
        log.info(
            "Merge pass (%s) finished: status=%s, total=%s, reason=%s",
            trigger,
            outcome.status,
            outcome.total_items,
            outcome.reason,
        )
        return outcome

    def _on_done(self, task: asyncio.Task[MergeOutcome]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            log.info("Merge task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            log.error("Merge task %s failed", task.get_name(), exc_info=exc)
