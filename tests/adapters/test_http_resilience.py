from __future__ import annotations

import asyncio

import httpx

from mediafed.adapters.http_resilience import ResilientClient, build_limiter
from mediafed.config.http_resilience import RateLimit, ResilienceConfig


def test_client_applies_default_headers_and_hooks() -> None:
    seen: list[httpx.Request] = []
    statuses: list[int] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    async def record(response: httpx.Response) -> None:
        statuses.append(response.status_code)

    config = ResilienceConfig(
        name="test",
        base_url="http://peer",
        default_headers={"User-Agent": "mediafed"},
        response_hooks=(record,),
    )

    async def scenario() -> None:
        async with ResilientClient(config, transport=httpx.MockTransport(handler)) as client:
            await client.get("/System/Info", headers={"X-Extra": "1"})

    asyncio.run(scenario())

    assert str(seen[0].url) == "http://peer/System/Info"
    assert seen[0].headers["User-Agent"] == "mediafed"
    assert seen[0].headers["X-Extra"] == "1"
    assert statuses == [204]


def test_limiter_only_built_when_configured() -> None:
    assert build_limiter(ResilienceConfig(name="open")) is None
    limiter = build_limiter(ResilienceConfig(name="slow", ratelimit=RateLimit(2, 1.0)))
    assert limiter is not None
    assert limiter.max_rate == 2
