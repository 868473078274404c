from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, ConfigDict, Field

from mediafed.app import public_entry, public_outcome, public_peer
from mediafed.config.errors import ConfigurationError
from mediafed.domain.errors import AddressError, DuplicatePeer, MutationForbidden, PeerNotFound
from mediafed.domain.model import DEFAULT_PEER_PORT

if TYPE_CHECKING:
    from collections.abc import Callable

    from mediafed.app import FederationService
    from mediafed.domain.model import FederationPolicy

log = logging.getLogger(__name__)

ROUTE_PREFIX = "/Federation"

ENDPOINTS = {
    "status": f"{ROUTE_PREFIX}/Status",
    "servers": f"{ROUTE_PREFIX}/Servers",
    "addServer": f"{ROUTE_PREFIX}/AddServer",
    "removeServer": f"{ROUTE_PREFIX}/RemoveServer",
    "updateModes": f"{ROUTE_PREFIX}/UpdateModes",
    "testConnection": f"{ROUTE_PREFIX}/TestConnection",
    "refresh": f"{ROUTE_PREFIX}/Refresh",
    "aggregate": f"{ROUTE_PREFIX}/Aggregate",
    "stream": f"{ROUTE_PREFIX}/Stream",
}


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AddServerPayload(_Payload):
    server_url: str = Field(alias="serverUrl", min_length=1, max_length=2048)
    api_key: Optional[str] = Field(default=None, alias="apiKey", max_length=512)
    port: int = Field(default=DEFAULT_PEER_PORT, ge=1, le=65535)


class RemoveServerPayload(_Payload):
    server_url: str = Field(alias="serverUrl", min_length=1, max_length=2048)


class TestConnectionPayload(_Payload):
    server_url: str = Field(alias="serverUrl", min_length=1, max_length=2048)
    api_key: Optional[str] = Field(default=None, alias="apiKey", max_length=512)


class UpdateModesPayload(_Payload):
    enable_federation: Optional[bool] = Field(default=None, alias="enableFederation")
    client_mode_enabled: Optional[bool] = Field(default=None, alias="clientMode")
    server_mode_enabled: Optional[bool] = Field(default=None, alias="serverMode")
    require_https: Optional[bool] = Field(default=None, alias="requireHttps")
    admin_only_changes: Optional[bool] = Field(default=None, alias="adminOnlyChanges")

    def changes(self) -> dict[str, bool]:
        return {key: value for key, value in self.model_dump().items() if value is not None}


def public_policy(policy: FederationPolicy) -> dict[str, bool]:
    return {
        "enableFederation": policy.enable_federation,
        "clientMode": policy.client_mode_enabled,
        "serverMode": policy.server_mode_enabled,
        "requireHttps": policy.require_https,
        "adminOnlyChanges": policy.admin_only_changes,
    }


def create_federation_router(
    *,
    service: FederationService,
    is_admin: Callable[[Request], bool],
) -> APIRouter:
    router = APIRouter(prefix=ROUTE_PREFIX)

    def capability(request: Request) -> Callable[[], bool]:
        return lambda: is_admin(request)

    @router.get("/Status")
    async def federation_status() -> dict:
        payload = service.status()
        payload["endpoints"] = dict(ENDPOINTS)
        return payload

    @router.get("/Servers")
    async def list_servers() -> list[dict]:
        return service.list_servers()

    @router.post("/AddServer")
    async def add_server(payload: AddServerPayload, request: Request) -> dict:
        try:
            peer = service.add_peer(
                payload.server_url,
                payload.api_key or "",
                payload.port,
                caller_may_mutate=capability(request),
            )
        except MutationForbidden as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except AddressError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except DuplicatePeer as exc:
            raise HTTPException(status_code=409, detail="Server already exists") from exc
        except ConfigurationError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return {"success": True, "server": public_peer(peer)}

    @router.post("/RemoveServer")
    async def remove_server(payload: RemoveServerPayload, request: Request) -> dict:
        try:
            peer = service.remove_peer(payload.server_url, caller_may_mutate=capability(request))
        except MutationForbidden as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except PeerNotFound as exc:
            raise HTTPException(status_code=404, detail="Server not found") from exc
        except ConfigurationError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return {"success": True, "removed": peer.base_address}

    @router.post("/UpdateModes")
    async def update_modes(payload: UpdateModesPayload, request: Request) -> dict:
        try:
            policy = service.update_policy(
                caller_may_mutate=capability(request), **payload.changes()
            )
        except MutationForbidden as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except ConfigurationError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return {"success": True, **public_policy(policy)}

    @router.post("/TestConnection")
    async def test_connection(payload: TestConnectionPayload) -> dict:
        result = await service.test_connection(payload.server_url, payload.api_key or "")
        return {
            "success": result.reachable,
            "message": result.status_summary,
            "responsePreview": result.body_preview,
        }

    @router.post("/Refresh")
    async def refresh() -> dict[str, Any]:
        outcome = await service.refresh()
        return public_outcome(outcome)

    @router.get("/Aggregate")
    async def aggregate() -> dict:
        entries = service.list_aggregate()
        return {"count": len(entries), "items": [public_entry(entry) for entry in entries]}

    @router.get("/Stream")
    async def stream(
        server_url: Optional[str] = Query(None, alias="serverUrl"),
        item_id: Optional[str] = Query(None, alias="id"),
    ) -> RedirectResponse:
        try:
            target = service.resolve_stream(server_url, item_id)
        except AddressError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        log.info("Redirecting playback of %s to %s", item_id, target)
        return RedirectResponse(target, status_code=302)

    return router
