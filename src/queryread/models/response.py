"""Decoded server response."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ItemsResponse(BaseModel):
    """Body of a successful fetch: an object exposing an ``items`` list.

    Any other top-level keys the server sends (``identifier``, ``label``,
    ``numRows`` ...) are ignored by the store but kept in ``raw``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    items: list[dict[str, Any]]
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> ItemsResponse:
        return cls.model_validate({"items": payload.get("items"), "raw": payload})
