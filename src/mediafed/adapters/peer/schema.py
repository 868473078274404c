"""Pydantic models describing the peer item-listing payloads."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_ZERO_ID = re.compile(r"^[0{}\-]+$")


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class PeerBaseModel(BaseModel):
    """Base model whose fields match payload keys regardless of case."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _match_keys_case_insensitively(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        aliases = {
            (info.alias or name).lower(): info.alias or name
            for name, info in cls.model_fields.items()
        }
        data: dict[str, object] = {}
        for key, item in cast(Mapping[object, object], value).items():
            alias = aliases.get(str(key).lower())
            if alias is None:
                continue
            if alias == key or alias not in data:
                data[alias] = item
        return data


class ItemPayload(PeerBaseModel):
    id: str | None = Field(default=None, alias="Id")
    name: str | None = Field(default=None, alias="Name")
    type: str | None = Field(default=None, alias="Type")

    _normalize_name = field_validator("name", "type", mode="before")(_blank_to_none)

    @field_validator("id", mode="before")
    @classmethod
    def _drop_sentinel_id(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        value = _blank_to_none(value)
        if isinstance(value, str) and _ZERO_ID.match(value):
            return None
        return value


class ItemsEnvelope(PeerBaseModel):
    items: list[ItemPayload] = Field(alias="Items")
    total_record_count: int | None = Field(default=None, alias="TotalRecordCount")

    @field_validator("items", mode="before")
    @classmethod
    def _null_to_empty(cls, value: object) -> object:
        return [] if value is None else value
