"""Peer address normalisation and the HTTPS policy check.

Every component that talks to a peer (merge, connectivity probe, playback
redirect) goes through :func:`normalize_peer_address`, so one configured address
always maps to the same aggregate key.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit, urlunsplit

from .errors import HttpsRequired, InvalidAddress

_SCHEMES = ("http://", "https://")
_FORBIDDEN_HOST_CHARS = re.compile(r"[\s<>\"{}|\\^`/]")


def strip_trailing_slash(value: str) -> str:
    return value.rstrip("/")


def has_scheme(value: str) -> bool:
    return value.lower().startswith(_SCHEMES)


def normalize_peer_address(raw: str | None, *, require_https: bool) -> str:
    """Return the canonical absolute URL for ``raw``.

    Bare ``host:port`` values get an ``http://`` prefix before parsing. Scheme and
    host are lower-cased and trailing slashes removed, which makes the function
    idempotent.

    Raises:
        InvalidAddress: the value does not parse as an absolute http(s) URL.
        HttpsRequired: ``require_https`` is set and the scheme is not ``https``.
    """

    candidate = strip_trailing_slash((raw or "").strip())
    if not has_scheme(candidate):
        candidate = "http://" + candidate

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as exc:
        raise InvalidAddress(f"Invalid server address: {raw!r}") from exc

    host = parts.hostname
    if not host or _FORBIDDEN_HOST_CHARS.search(host):
        raise InvalidAddress(f"Invalid server address: {raw!r}")

    scheme = parts.scheme.lower()
    if require_https and scheme != "https":
        raise HttpsRequired("HTTPS required by configuration")

    netloc = f"[{host}]" if ":" in host else host
    if port is not None:
        netloc = f"{netloc}:{port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    return strip_trailing_slash(
        urlunsplit((scheme, netloc, parts.path, parts.query, parts.fragment))
    )


def same_address(left: str, right: str) -> bool:
    """Case-insensitive comparison of two stored addresses, ignoring trailing slashes."""

    return strip_trailing_slash(left.strip()).lower() == strip_trailing_slash(right.strip()).lower()
