"""Data models for queryread requests, responses and items."""

from queryread.models.item import Item
from queryread.models.request import FetchRequest, SortField
from queryread.models.response import ItemsResponse

__all__ = [
    "FetchRequest",
    "Item",
    "ItemsResponse",
    "SortField",
]
