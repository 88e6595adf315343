"""queryread - Async, read-only store over a remote query endpoint."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("queryread")
except PackageNotFoundError:
    __version__ = "0+local"
from queryread.config import StoreConfig
from queryread.exceptions import (
    InvalidAttributeError,
    InvalidItemError,
    QueryReadError,
    StoreConfigError,
    StoreTransportError,
)
from queryread.models import FetchRequest, Item, ItemsResponse, SortField
from queryread.store import READ_FEATURE, QueryReadStore

__all__ = [
    "__version__",
    "FetchRequest",
    "InvalidAttributeError",
    "InvalidItemError",
    "Item",
    "ItemsResponse",
    "QueryReadError",
    "QueryReadStore",
    "READ_FEATURE",
    "SortField",
    "StoreConfig",
    "StoreConfigError",
    "StoreTransportError",
]
