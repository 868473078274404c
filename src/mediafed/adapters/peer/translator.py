"""Translate peer payloads into catalog items."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger

from pydantic import ValidationError

from mediafed.domain.errors import MalformedResponse
from mediafed.domain.model import RemoteCatalogItem

from .schema import ItemPayload, ItemsEnvelope

log = getLogger(__name__)

UNNAMED = "(unnamed)"


def parse_items_envelope(payload: object) -> ItemsEnvelope:
    """Accept either a bare item array or an ``{"Items": [...]}`` envelope."""

    if isinstance(payload, list):
        payload = {"Items": payload}
    if not isinstance(payload, Mapping):
        raise MalformedResponse(f"Unexpected item listing payload: {type(payload).__name__}")
    try:
        return ItemsEnvelope.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponse(
            f"Item listing does not match the expected shape ({exc.error_count()} errors)"
        ) from exc


def parse_catalog_item(payload: ItemPayload) -> RemoteCatalogItem | None:
    if payload.id is None:
        return None
    return RemoteCatalogItem(
        remote_id=payload.id,
        display_name=payload.name or UNNAMED,
        media_kind=payload.type,
    )


def parse_catalog_items(payload: object) -> list[RemoteCatalogItem]:
    envelope = parse_items_envelope(payload)
    items: list[RemoteCatalogItem] = []
    skipped = 0
    for item_payload in envelope.items:
        item = parse_catalog_item(item_payload)
        if item is None:
            skipped += 1
            continue
        items.append(item)
    if skipped:
        log.debug("Skipped %s items without an identifier", skipped)
    return items
