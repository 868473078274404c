"""HTTP client for federated peers."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from mediafed.adapters.http_resilience import ResilientClient, build_limiter
from mediafed.config.federation import USER_AGENT
from mediafed.config.http_resilience import ResilienceConfig
from mediafed.domain.addresses import normalize_peer_address
from mediafed.domain.errors import AddressError, FederationError, MalformedResponse, PeerUnreachable
from mediafed.domain.model import ProbeResult

from .translator import parse_catalog_items

if TYPE_CHECKING:
    from collections.abc import Callable

    from mediafed.domain.model import PeerDescriptor, RemoteCatalogItem
    from mediafed.domain.ports.peers import PeerCatalogClient

log = getLogger(__name__)

PROBE_PATH = "/System/Info"
ITEMS_PATH = "/Items"
BODY_PREVIEW_LENGTH = 200
TOKEN_HEADER = "X-MediaBrowser-Token"


def auth_headers(credential: str) -> dict[str, str]:
    """Headers carrying the peer's access token; empty when no token is configured."""

    token = credential.strip()
    if not token:
        return {}
    return {
        "Authorization": f'MediaBrowser Token="{token}"',
        TOKEN_HEADER: token,
    }


def body_preview(text: str, *, limit: int = BODY_PREVIEW_LENGTH) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def _status_summary(response: httpx.Response) -> str:
    return f"HTTP {response.status_code} {response.reason_phrase}".strip()


def _default_resilience_config() -> ResilienceConfig:
    return ResilienceConfig(name="peer", default_headers={"User-Agent": USER_AGENT})


class PeerClient:
    """Single-shot HTTP calls to one peer: connectivity probe and item listing.

    Every call opens its own short-lived client and makes exactly one attempt.
    Failures never escape: the probe reports them in its summary and the catalog
    fetch logs them and returns an empty list.
    """

    def __init__(
        self,
        *,
        resilience: ResilienceConfig | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._resilience = resilience or _default_resilience_config()
        self._limiter = build_limiter(self._resilience)
        self._client_factory = client_factory or self._build_client

    def _build_client(self, config: ResilienceConfig) -> ResilientClient:
        return ResilientClient(config, limiter=self._limiter)

    async def probe(self, peer: PeerDescriptor, *, require_https: bool) -> ProbeResult:
        try:
            address = normalize_peer_address(peer.base_address, require_https=require_https)
        except AddressError as exc:
            return ProbeResult(reachable=False, status_summary=str(exc))

        try:
            response = await self._get(address + PROBE_PATH, peer)
        except PeerUnreachable as exc:
            log.warning("Connectivity test failed for %s: %s", address, exc)
            return ProbeResult(reachable=False, status_summary=str(exc))

        if not response.is_success:
            return ProbeResult(reachable=False, status_summary=_status_summary(response))
        return ProbeResult(
            reachable=True,
            status_summary=f"Connected ({response.status_code})",
            body_preview=body_preview(response.text),
        )

    async def fetch_catalog(
        self, peer: PeerDescriptor, *, require_https: bool
    ) -> list[RemoteCatalogItem]:
        try:
            return await self._request_catalog(peer, require_https=require_https)
        except FederationError as exc:
            log.warning("Catalog fetch failed for %s: %s", peer.base_address, exc)
            return []

    async def _request_catalog(
        self, peer: PeerDescriptor, *, require_https: bool
    ) -> list[RemoteCatalogItem]:
        address = normalize_peer_address(peer.base_address, require_https=require_https)
        log.info("Requesting catalog from %s", address)
        response = await self._get(address + ITEMS_PATH, peer)
        if not response.is_success:
            raise PeerUnreachable(_status_summary(response), status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponse("Item listing is not valid JSON") from exc

        items = parse_catalog_items(payload)
        log.debug("Catalog from %s: %s", address, body_preview(response.text))
        return items

    async def _get(self, url: str, peer: PeerDescriptor) -> httpx.Response:
        try:
            async with self._client_factory(self._resilience) as client:
                return await client.get(url, headers=auth_headers(peer.credential))
        except httpx.TimeoutException as exc:
            raise PeerUnreachable(
                f"Timed out after {self._resilience.timeout_seconds:g}s"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise PeerUnreachable(str(exc) or type(exc).__name__) from exc


if TYPE_CHECKING:
    _client_check: PeerCatalogClient = PeerClient()
