from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from mediafed.app import FederationService, build_federation_service
from mediafed.config import get_federation_config
from mediafed.domain.errors import HttpsRequired, MutationForbidden
from mediafed.domain.model import FederationPolicy, MergeStatus, PeerDescriptor
from tests.helpers.peers import FakePeerClient, InMemorySettings, make_items

if TYPE_CHECKING:
    from mediafed.adapters.settings_store import JsonSettingsStore


def _never() -> bool:
    return False


def _always() -> bool:
    return True


def _service(settings: InMemorySettings, client: FakePeerClient | None = None) -> FederationService:
    return FederationService(settings=settings, client=client or FakePeerClient())


def test_refresh_merges_configured_peers() -> None:
    async def scenario() -> None:
        settings = InMemorySettings(
            policy=FederationPolicy(require_https=False),
            peers=(PeerDescriptor("http://a"), PeerDescriptor("http://b")),
        )
        client = FakePeerClient(
            {"http://a": make_items(("1", "One")), "http://b": make_items(("1", "Uno"))}
        )
        service = _service(settings, client)

        outcome = await service.refresh()

        assert outcome.status is MergeStatus.COMPLETED
        assert {entry.display_name for entry in service.list_aggregate()} == {"One", "Uno"}
        status = service.status()
        assert status["aggregateCount"] == 2
        assert status["lastMerge"]["status"] == "completed"
        assert status["mergeInProgress"] is False

    asyncio.run(scenario())


def test_admin_only_changes_blocks_non_admin() -> None:
    settings = InMemorySettings()
    service = _service(settings)

    with pytest.raises(MutationForbidden):
        service.add_peer("https://a.example", caller_may_mutate=_never)
    with pytest.raises(MutationForbidden):
        service.update_policy(caller_may_mutate=_never, require_https=False)

    assert settings.peers == ()


def test_non_admin_may_mutate_when_gate_is_off() -> None:
    settings = InMemorySettings(policy=FederationPolicy(admin_only_changes=False))
    service = _service(settings)

    peer = service.add_peer("https://a.example", "token-123456789", caller_may_mutate=_never)

    assert peer.base_address == "https://a.example"
    assert service.list_servers() == [
        {
            "serverUrl": "https://a.example",
            "port": 8096,
            "hasApiKey": True,
            "apiKeyPreview": "token-12...",
        }
    ]


def test_configuration_change_schedules_a_merge() -> None:
    async def scenario() -> None:
        settings = InMemorySettings(policy=FederationPolicy(require_https=False))
        client = FakePeerClient({"http://a": make_items(("1", "One"))})
        service = _service(settings, client)

        service.add_peer("http://a", caller_may_mutate=_always)
        assert service.scheduler.pending == 1
        for _ in range(20):
            if not service.scheduler.pending:
                break
            await asyncio.sleep(0.01)

        assert client.fetched == ["http://a"]
        assert [entry.remote_id for entry in service.list_aggregate()] == ["1"]

    asyncio.run(scenario())


def test_configuration_change_outside_event_loop_is_deferred() -> None:
    service = _service(InMemorySettings())

    assert service.notify_configuration_changed() is None


def test_test_connection_uses_current_https_policy() -> None:
    client = FakePeerClient()
    service = _service(InMemorySettings(), client)

    result = asyncio.run(service.test_connection("http://peer", "tok"))

    assert not result.reachable
    assert result.status_summary == "HTTPS required by configuration"
    assert client.probed[0].credential == "tok"


def test_resolve_stream_uses_current_policy() -> None:
    settings = InMemorySettings()
    service = _service(settings)

    with pytest.raises(HttpsRequired):
        service.resolve_stream("http://peer", "1")

    settings.policy = FederationPolicy(require_https=False)
    assert service.resolve_stream("http://peer", "1") == "http://peer/Items/1/Playback"


def test_status_never_exposes_credentials() -> None:
    settings = InMemorySettings(peers=(PeerDescriptor("https://a", credential="very-secret-token"),))
    status = _service(settings).status()

    assert "very-secret-token" not in repr(status)
    assert status["serverCount"] == 1
    assert status["lastMerge"] is None


def test_build_federation_service_uses_settings_path(settings_store: JsonSettingsStore) -> None:
    service = build_federation_service(get_federation_config(), settings=settings_store)

    assert service.settings is settings_store
    assert service.list_servers() == []
