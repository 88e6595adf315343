"""Current result set of a store, stamped with the store's ownership token."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from queryread.models.item import Item


class ItemRegistry:
    """Holds the items of the last successful fetch.

    The token is created once per registry and stamped on every item it
    hands out; ``owns`` is the only identity check the store performs.
    """

    def __init__(self) -> None:
        self._token = object()
        self._items: list[Item] = []

    @property
    def token(self) -> object:
        return self._token

    @property
    def items(self) -> list[Item]:
        return self._items

    def owns(self, candidate: Any) -> bool:
        return isinstance(candidate, Item) and candidate.store_token is self._token

    def replace_all(self, raw_items: Iterable[Mapping[str, Any]]) -> list[Item]:
        """Discard the current result set and stamp *raw_items* as the new one."""
        self._items = [Item(data=raw, store_token=self._token) for raw in raw_items]
        return self._items
