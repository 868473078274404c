"""Public interface for the peer HTTP adapter."""

from __future__ import annotations

from .client import PeerClient, auth_headers, body_preview
from .schema import ItemPayload, ItemsEnvelope
from .translator import parse_catalog_item, parse_catalog_items, parse_items_envelope

__all__ = [
    "ItemPayload",
    "ItemsEnvelope",
    "PeerClient",
    "auth_headers",
    "body_preview",
    "parse_catalog_item",
    "parse_catalog_items",
    "parse_items_envelope",
]
