"""Store-stamped item records."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True, eq=False)
class Item:
    """A raw server record paired with the token of the store that produced it.

    Items compare by identity: two items with equal ``data`` are still
    different items, and only the store whose token is ``store_token``
    accepts them.
    """

    data: Mapping[str, Any]
    store_token: object

    def __repr__(self) -> str:
        return f"Item({dict(self.data)!r})"
