from __future__ import annotations

import pytest

from mediafed.domain.addresses import normalize_peer_address, same_address
from mediafed.domain.errors import AddressError, HttpsRequired, InvalidAddress


def test_bare_host_gets_http_scheme() -> None:
    assert normalize_peer_address("peer:8096", require_https=False) == "http://peer:8096"


def test_trailing_slashes_and_whitespace_removed() -> None:
    result = normalize_peer_address("  https://peer.example:8096/// ", require_https=True)

    assert result == "https://peer.example:8096"


def test_scheme_and_host_are_lowercased() -> None:
    result = normalize_peer_address("HTTPS://Peer.Example", require_https=True)

    assert result == "https://peer.example"


@pytest.mark.parametrize(
    "raw",
    [
        "peer:8096",
        "http://peer.example/jellyfin/",
        "HTTPS://PEER.example:8920",
        "http://[::1]:8096",
    ],
)
def test_normalisation_is_idempotent(raw: str) -> None:
    once = normalize_peer_address(raw, require_https=False)

    assert normalize_peer_address(once, require_https=False) == once


def test_sub_path_is_kept() -> None:
    result = normalize_peer_address("http://peer.example/jellyfin/", require_https=False)

    assert result == "http://peer.example/jellyfin"


def test_https_policy_rejects_plain_http() -> None:
    with pytest.raises(HttpsRequired, match="HTTPS required by configuration"):
        normalize_peer_address("http://peer.example", require_https=True)


def test_https_policy_rejects_scheme_less_address() -> None:
    with pytest.raises(HttpsRequired):
        normalize_peer_address("peer.example:8096", require_https=True)


def test_https_policy_accepts_https() -> None:
    assert normalize_peer_address("https://peer.example", require_https=True) == (
        "https://peer.example"
    )


@pytest.mark.parametrize("raw", ["", "   ", None, "http://", "http://bad host", "http://peer:99999"])
def test_invalid_addresses_raise(raw: str | None) -> None:
    with pytest.raises(InvalidAddress):
        normalize_peer_address(raw, require_https=False)


def test_address_errors_share_a_base() -> None:
    assert issubclass(InvalidAddress, AddressError)
    assert issubclass(HttpsRequired, AddressError)


def test_same_address_ignores_case_and_trailing_slash() -> None:
    assert same_address("https://Peer.example/", "https://peer.example")
    assert not same_address("https://peer-a.example", "https://peer-b.example")
