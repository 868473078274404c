"""Playback hand-off to the peer that owns an item."""

from __future__ import annotations

from .addresses import has_scheme, normalize_peer_address, strip_trailing_slash
from .errors import HttpsRequired, InvalidAddress

STREAM_PATH_TEMPLATE = "/Items/{item_id}/Playback"


def build_stream_address(peer_base_address: str, remote_item_id: str) -> str:
    """Return the peer's native stream URL for ``remote_item_id``.

    The address is trusted as already validated; only trailing slashes are
    removed so stored and freshly typed addresses yield the same target.
    """

    return strip_trailing_slash(peer_base_address) + STREAM_PATH_TEMPLATE.format(
        item_id=remote_item_id
    )


def resolve_playback_redirect(
    peer_address: str | None,
    remote_item_id: str | None,
    *,
    require_https: bool,
) -> str:
    """Validate a redirect request at the boundary and build its target.

    The address must carry an explicit http(s) scheme and pass the same checks
    as a configured peer; the redirect keeps the caller's literal spelling.
    """

    address = (peer_address or "").strip()
    item_id = (remote_item_id or "").strip()
    if not address or not item_id:
        raise InvalidAddress("serverUrl and id are required")
    if require_https and not address.lower().startswith("https://"):
        raise HttpsRequired("HTTPS required by configuration")
    if not has_scheme(address):
        raise InvalidAddress(f"Invalid server address: {address!r}")
    normalize_peer_address(address, require_https=require_https)
    return build_stream_address(address, item_id)
