"""In-memory aggregate of every peer's catalog."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model import AggregateEntry, AggregateKey


class AggregateStore:
    """Thread-safe mapping of :class:`AggregateKey` to :class:`AggregateEntry`.

    Writes come only from the merge coordinator; readers use :meth:`snapshot`,
    which copies under the lock so a reader sees either the state before a
    ``clear()`` or after it, never a mixture.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[AggregateKey, AggregateEntry] = {}

    def clear(self) -> None:
        with self._lock:
            self._entries = {}

    def put(self, key: AggregateKey, entry: AggregateEntry) -> None:
        with self._lock:
            self._entries[key] = entry

    def get(self, key: AggregateKey) -> AggregateEntry | None:
        with self._lock:
            return self._entries.get(key)

    def snapshot(self) -> tuple[AggregateEntry, ...]:
        with self._lock:
            return tuple(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
