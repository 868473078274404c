from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from fastapi.testclient import TestClient

from mediafed.adapters.settings_store import JsonSettingsStore
from mediafed.api.app import create_app, token_admin_check
from mediafed.app import FederationService
from mediafed.domain.model import FederationPolicy, PeerDescriptor
from tests.helpers.peers import FakePeerClient, InMemorySettings, make_items

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from fastapi import Request


def _admin(_request: Request) -> bool:
    return True


def _guest(_request: Request) -> bool:
    return False


@pytest.fixture
def settings() -> InMemorySettings:
    return InMemorySettings(
        policy=FederationPolicy(require_https=False),
        peers=(PeerDescriptor("http://a", credential="abcdefghijkl"),),
    )


@pytest.fixture
def peer_client() -> FakePeerClient:
    return FakePeerClient({"http://a": make_items(("1", "One"), ("2", "Two"))})


@pytest.fixture
def service(settings: InMemorySettings, peer_client: FakePeerClient) -> FederationService:
    return FederationService(settings=settings, client=peer_client)


@pytest.fixture
def client(service: FederationService) -> Iterator[TestClient]:
    app = create_app(service, is_admin=_admin, refresh_interval_seconds=0)
    with TestClient(app) as test_client:
        yield test_client


def test_status_lists_flags_and_masks_credentials(client: TestClient) -> None:
    response = client.get("/Federation/Status")

    assert response.status_code == 200
    body = response.json()
    assert body["enableFederation"] is True
    assert body["requireHttps"] is False
    assert body["serverCount"] == 1
    assert body["servers"][0]["apiKeyPreview"] == "abcdefgh..."
    assert "abcdefghijkl" not in response.text
    assert body["endpoints"]["stream"] == "/Federation/Stream"


def test_refresh_and_aggregate(client: TestClient) -> None:
    refresh = client.post("/Federation/Refresh")

    assert refresh.status_code == 200
    assert refresh.json()["status"] == "completed"
    aggregate = client.get("/Federation/Aggregate").json()
    assert aggregate["count"] == 2
    assert {item["id"] for item in aggregate["items"]} == {"1", "2"}
    assert {item["serverUrl"] for item in aggregate["items"]} == {"http://a"}


def test_add_server_conflict_and_validation(client: TestClient, settings: InMemorySettings) -> None:
    created = client.post("/Federation/AddServer", json={"serverUrl": "b.example:8096"})

    assert created.status_code == 200
    assert created.json()["server"]["serverUrl"] == "http://b.example:8096"
    assert [peer.base_address for peer in settings.peers] == ["http://a", "http://b.example:8096"]

    duplicate = client.post("/Federation/AddServer", json={"serverUrl": "HTTP://b.example:8096/"})
    assert duplicate.status_code == 409

    invalid = client.post("/Federation/AddServer", json={"serverUrl": "http://bad host"})
    assert invalid.status_code == 400

    bad_port = client.post("/Federation/AddServer", json={"serverUrl": "c.example", "port": 0})
    assert bad_port.status_code == 422


def test_remove_server(client: TestClient) -> None:
    assert client.post("/Federation/RemoveServer", json={"serverUrl": "http://a/"}).status_code == 200
    assert client.post("/Federation/RemoveServer", json={"serverUrl": "http://a"}).status_code == 404
    assert client.get("/Federation/Servers").json() == []


def test_update_modes(client: TestClient, settings: InMemorySettings) -> None:
    response = client.post("/Federation/UpdateModes", json={"clientMode": False})

    assert response.status_code == 200
    assert response.json()["clientMode"] is False
    assert settings.policy.client_mode_enabled is False
    assert settings.policy.enable_federation is True

    refresh = client.post("/Federation/Refresh").json()
    assert refresh["status"] == "skipped"


def test_mutations_forbidden_for_non_admin(service: FederationService) -> None:
    app = create_app(service, is_admin=_guest, refresh_interval_seconds=0)
    with TestClient(app) as guest:
        assert guest.post("/Federation/AddServer", json={"serverUrl": "x"}).status_code == 403
        assert guest.post("/Federation/RemoveServer", json={"serverUrl": "http://a"}).status_code == 403
        assert guest.post("/Federation/UpdateModes", json={"requireHttps": True}).status_code == 403
        assert guest.get("/Federation/Servers").status_code == 200


def test_test_connection(client: TestClient, peer_client: FakePeerClient) -> None:
    response = client.post(
        "/Federation/TestConnection", json={"serverUrl": "http://a", "apiKey": "tok"}
    )

    assert response.json() == {
        "success": True,
        "message": "Connected (200)",
        "responsePreview": "{}",
    }
    assert peer_client.probed[-1].credential == "tok"


def test_stream_redirects_to_owning_peer(client: TestClient) -> None:
    response = client.get(
        "/Federation/Stream",
        params={"serverUrl": "http://a/", "id": "abc123"},
        follow_redirects=False,
    )

    assert response.status_code == 302
    assert response.headers["location"] == "http://a/Items/abc123/Playback"


def test_stream_rejects_blank_and_insecure(client: TestClient, settings: InMemorySettings) -> None:
    blank = client.get("/Federation/Stream", params={"id": "1"}, follow_redirects=False)
    assert blank.status_code == 400

    settings.policy = FederationPolicy(require_https=True)
    insecure = client.get(
        "/Federation/Stream",
        params={"serverUrl": "http://a", "id": "1"},
        follow_redirects=False,
    )
    assert insecure.status_code == 400
    assert insecure.json()["detail"] == "HTTPS required by configuration"


class _FakeRequest:
    def __init__(self, headers: dict[str, str]) -> None:
        self.headers = headers


def test_token_admin_check() -> None:
    check = token_admin_check("s3cret")

    assert check(_FakeRequest({"X-MediaBrowser-Token": "s3cret"}))  # type: ignore[arg-type]
    assert check(_FakeRequest({"Authorization": "Bearer s3cret"}))  # type: ignore[arg-type]
    assert not check(_FakeRequest({"X-MediaBrowser-Token": "wrong"}))  # type: ignore[arg-type]
    assert not check(_FakeRequest({}))  # type: ignore[arg-type]
    assert not token_admin_check(None)(_FakeRequest({"X-MediaBrowser-Token": "x"}))  # type: ignore[arg-type]
    assert not check(_FakeRequest({"X-MediaBrowser-Token": "s\xe9cret"}))  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "server_url",
    ["peer.example:8096", "ftp://peer.example", "javascript:alert(1)//"],
)
def test_stream_never_redirects_outside_http(client: TestClient, server_url: str) -> None:
    response = client.get(
        "/Federation/Stream",
        params={"serverUrl": server_url, "id": "1"},
        follow_redirects=False,
    )

    assert response.status_code == 400
    assert "location" not in response.headers


def test_non_ascii_token_is_refused_not_crashed(service: FederationService) -> None:
    app = create_app(service, is_admin=token_admin_check("s3cret"), refresh_interval_seconds=0)
    with TestClient(app) as caller:
        response = caller.post(
            "/Federation/AddServer",
            json={"serverUrl": "https://b.example"},
            headers={"X-MediaBrowser-Token": "s\xe9cret".encode("latin-1")},
        )

    assert response.status_code == 403


def test_mutation_on_unreadable_settings_file_is_refused(
    tmp_path: Path, peer_client: FakePeerClient
) -> None:
    path = tmp_path / "federation.json"
    path.write_text("{truncated")
    service = FederationService(settings=JsonSettingsStore(path), client=peer_client)
    app = create_app(service, is_admin=_admin, refresh_interval_seconds=0)
    with TestClient(app) as caller:
        response = caller.post("/Federation/AddServer", json={"serverUrl": "https://b.example"})

    assert response.status_code == 503
    assert path.read_text() == "{truncated"
