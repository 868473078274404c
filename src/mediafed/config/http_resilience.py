"""Configuration types for peer HTTP clients."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from collections.abc import Mapping

ResponseHook = Callable[[httpx.Response], Awaitable[None] | None]

DEFAULT_PEER_TIMEOUT_SECONDS = 15.0


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    """HTTP client settings shared by every call to a peer.

    Peer calls are single-shot: a failed attempt is final for the merge pass, so
    there is no retry policy here.
    """

    name: str
    base_url: str | None = None
    timeout_seconds: float = DEFAULT_PEER_TIMEOUT_SECONDS
    ratelimit: RateLimit | None = None
    response_hooks: tuple[ResponseHook, ...] = field(default_factory=tuple)
    default_headers: Mapping[str, str] | None = None
