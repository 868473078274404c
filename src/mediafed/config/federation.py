"""Federation runtime settings."""

from __future__ import annotations

from dataclasses import dataclass, field

from mediafed.domain.merge import DEFAULT_FETCH_CONCURRENCY

from .env import env_float, env_int, optional_env
from .http_resilience import DEFAULT_PEER_TIMEOUT_SECONDS, ResilienceConfig
from .storage import StorageConfig, get_storage_config

USER_AGENT = "mediafed"


def _default_resilience() -> ResilienceConfig:
    return ResilienceConfig(name="peer", default_headers={"User-Agent": USER_AGENT})


@dataclass(frozen=True, slots=True)
class FederationConfig:
    """Process-level knobs for merge passes and peer calls.

    Peer lists and policy flags are not part of this object: they belong to the
    settings store and are snapshotted at the start of every pass.
    """

    storage: StorageConfig
    resilience: ResilienceConfig = field(default_factory=_default_resilience)
    fetch_concurrency: int = DEFAULT_FETCH_CONCURRENCY
    refresh_interval_seconds: float = 0.0
    gate_timeout_seconds: float | None = None
    admin_token: str | None = field(default=None, repr=False)


def get_federation_config(*, storage: StorageConfig | None = None) -> FederationConfig:
    timeout = env_float("MEDIAFED_HTTP_TIMEOUT", DEFAULT_PEER_TIMEOUT_SECONDS, minimum=0.1)
    concurrency = env_int("MEDIAFED_FETCH_CONCURRENCY", DEFAULT_FETCH_CONCURRENCY, minimum=1)
    refresh = env_float("MEDIAFED_REFRESH_INTERVAL", 0.0)
    gate_timeout = env_float("MEDIAFED_GATE_TIMEOUT", None)
    return FederationConfig(
        storage=storage or get_storage_config(),
        resilience=ResilienceConfig(
            name="peer",
            timeout_seconds=timeout or DEFAULT_PEER_TIMEOUT_SECONDS,
            default_headers={"User-Agent": USER_AGENT},
        ),
        fetch_concurrency=concurrency,
        refresh_interval_seconds=refresh or 0.0,
        gate_timeout_seconds=gate_timeout,
        admin_token=optional_env("MEDIAFED_ADMIN_TOKEN"),
    )
