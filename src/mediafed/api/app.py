"""FastAPI application hosting the federation endpoints."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import secrets
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request

from mediafed import __version__
from mediafed.adapters.peer.client import TOKEN_HEADER
from mediafed.app import build_federation_service
from mediafed.config.federation import get_federation_config
from mediafed.domain.scheduling import MergeTrigger

from .routes import create_federation_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from mediafed.app import FederationService

log = logging.getLogger(__name__)


def token_admin_check(admin_token: str | None) -> Callable[[Request], bool]:
    """Treat callers presenting ``admin_token`` as administrators.

    Without a configured token nobody is an administrator, so settings can only
    change through the API once ``admin_only_changes`` is switched off.
    """

    def is_admin(request: Request) -> bool:
        if not admin_token:
            return False
        presented = request.headers.get(TOKEN_HEADER, "")
        if not presented:
            auth = request.headers.get("Authorization", "")
            scheme, _, value = auth.partition(" ")
            presented = value.strip() if scheme.lower() == "bearer" else ""
        return bool(presented) and secrets.compare_digest(
            presented.encode(), admin_token.encode()
        )

    return is_admin


def create_app(
    service: FederationService | None = None,
    *,
    is_admin: Callable[[Request], bool] | None = None,
    refresh_interval_seconds: float | None = None,
) -> FastAPI:
    config = None
    if service is None or is_admin is None or refresh_interval_seconds is None:
        config = get_federation_config()
    federation = service or build_federation_service(config)
    admin_check = is_admin or token_admin_check(config.admin_token if config else None)
    interval = (
        refresh_interval_seconds
        if refresh_interval_seconds is not None
        else (config.refresh_interval_seconds if config else 0.0)
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        federation.scheduler.submit(MergeTrigger.STARTUP)
        stop = asyncio.Event()
        refresher: asyncio.Task[None] | None = None
        if interval > 0:
            log.info("Periodic refresh every %.0fs", interval)
            refresher = asyncio.create_task(
                federation.scheduler.run_periodic(interval, stop), name="merge-refresh"
            )
        try:
            yield
        finally:
            stop.set()
            if refresher is not None:
                refresher.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await refresher
            await federation.scheduler.shutdown()
            log.info("Federation endpoints stopped")

    app = FastAPI(title="mediafed", version=__version__, lifespan=lifespan)
    app.state.federation = federation
    app.include_router(create_federation_router(service=federation, is_admin=admin_check))
    return app
