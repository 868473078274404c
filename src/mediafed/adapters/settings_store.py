"""JSON file holding the peer list and federation policy flags."""

from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, field, fields, replace
from logging import getLogger
from typing import TYPE_CHECKING, Any

from mediafed.config.errors import ConfigurationError
from mediafed.domain.addresses import normalize_peer_address, same_address, strip_trailing_slash
from mediafed.domain.errors import DuplicatePeer, PeerNotFound
from mediafed.domain.model import DEFAULT_PEER_PORT, FederationPolicy, PeerDescriptor

if TYPE_CHECKING:
    from pathlib import Path

log = getLogger(__name__)

_POLICY_KEYS = {
    "enable_federation": "enable_federation",
    "client_mode": "client_mode_enabled",
    "server_mode": "server_mode_enabled",
    "require_https": "require_https",
    "admin_only_changes": "admin_only_changes",
}
POLICY_FLAGS = frozenset(f.name for f in fields(FederationPolicy))


@dataclass(frozen=True, slots=True)
class FederationSettings:
    policy: FederationPolicy = field(default_factory=FederationPolicy)
    peers: tuple[PeerDescriptor, ...] = ()

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            key: getattr(self.policy, attr) for key, attr in _POLICY_KEYS.items()
        }
        payload["peers"] = [
            {"base_address": p.base_address, "credential": p.credential, "port": p.port}
            for p in self.peers
        ]
        return payload


def _coerce_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in {"0", "false", "no", "off", ""}
    return bool(value)


def _coerce_port(value: object) -> int:
    try:
        port = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEFAULT_PEER_PORT
    return port if 1 <= port <= 65535 else DEFAULT_PEER_PORT


def validate_port(port: int) -> int:
    if not 1 <= port <= 65535:
        raise ValueError(f"Port must be between 1 and 65535, got {port}")
    return port


def _parse_peer(raw: object) -> PeerDescriptor | None:
    if not isinstance(raw, dict):
        return None
    address = raw.get("base_address")
    if not isinstance(address, str) or not address.strip():
        return None
    credential = raw.get("credential")
    return PeerDescriptor(
        base_address=address.strip(),
        credential=credential.strip() if isinstance(credential, str) else "",
        port=_coerce_port(raw.get("port", DEFAULT_PEER_PORT)),
    )


def parse_settings(data: object) -> FederationSettings:
    if not isinstance(data, dict):
        return FederationSettings()
    defaults = FederationPolicy()
    policy = FederationPolicy(
        **{
            attr: _coerce_bool(data.get(key), getattr(defaults, attr))
            for key, attr in _POLICY_KEYS.items()
        }
    )
    raw_peers = data.get("peers")
    peers: list[PeerDescriptor] = []
    if isinstance(raw_peers, list):
        for raw in raw_peers:
            peer = _parse_peer(raw)
            if peer is not None:
                peers.append(peer)
    return FederationSettings(policy=policy, peers=tuple(peers))


class JsonSettingsStore:
    """File-backed federation settings.

    Read-modify-write operations hold a lock so concurrent API calls cannot drop
    each other's changes. A missing file yields the defaults; an unreadable one
    does too for plain reads, but mutations refuse to overwrite it.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> FederationSettings:
        with self._lock:
            try:
                return self._read()
            except ConfigurationError:
                log.warning("%s is invalid; using default federation settings", self._path)
                return FederationSettings()

    def _read(self) -> FederationSettings:
        if not self._path.exists():
            return FederationSettings()
        try:
            data = json.loads(self._path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Cannot read federation settings {self._path}") from exc
        return parse_settings(data)

    def save(self, settings: FederationSettings) -> None:
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            staging = self._path.with_name(self._path.name + ".tmp")
            staging.write_text(json.dumps(settings.to_json(), indent=2))
            os.replace(staging, self._path)

    def add_peer(
        self,
        address: str,
        credential: str = "",
        port: int = DEFAULT_PEER_PORT,
    ) -> PeerDescriptor:
        """Validate and append a peer; the stored address is the normalised one."""

        validate_port(port)
        with self._lock:
            settings = self._read()
            normalized = normalize_peer_address(
                address, require_https=settings.policy.require_https
            )
            if any(same_address(p.base_address, normalized) for p in settings.peers):
                raise DuplicatePeer(f"Server already exists: {normalized}")
            peer = PeerDescriptor(
                base_address=normalized,
                credential=(credential or "").strip(),
                port=port,
            )
            self.save(replace(settings, peers=(*settings.peers, peer)))
        log.info("Added federated server: %s", normalized)
        return peer

    def remove_peer(self, address: str) -> PeerDescriptor:
        wanted = strip_trailing_slash((address or "").strip())
        with self._lock:
            settings = self._read()
            match = next(
                (p for p in settings.peers if same_address(p.base_address, wanted)), None
            )
            if match is None:
                raise PeerNotFound(f"Server not found: {wanted}")
            remaining = tuple(p for p in settings.peers if p is not match)
            self.save(replace(settings, peers=remaining))
        log.info("Removed federated server: %s", match.base_address)
        return match

    def update_policy(self, **changes: bool) -> FederationPolicy:
        unknown = set(changes) - POLICY_FLAGS
        if unknown:
            raise ValueError(f"Unknown policy flags: {', '.join(sorted(unknown))}")
        with self._lock:
            settings = self._read()
            policy = replace(settings.policy, **changes)
            self.save(replace(settings, policy=policy))
        log.info("Federation policy updated: %s", policy)
        return policy
