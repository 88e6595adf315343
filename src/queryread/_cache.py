"""Decides whether a fetch can reuse the items already held.

The comparison is against the last query *dispatched* to the transport,
recorded as soon as the request goes out. A query whose request later
failed therefore still counts as fetched: an identical follow-up with
client paging on is answered from whatever items the store holds.
"""

from __future__ import annotations

import copy
import enum
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


class CacheDecision(enum.Enum):
    REUSE = "reuse"
    DISPATCH = "dispatch"


def canonical_query(query: Mapping[str, Any] | None) -> str:
    """Serialize *query* so that structurally equal queries compare equal.

    Key order is ignored at every level. Keys must be strings (enforced by
    :class:`~queryread.models.request.FetchRequest`). Values JSON cannot
    represent fall back to their ``repr``.
    """
    return json.dumps(query, sort_keys=True, separators=(",", ":"), default=repr)


def queries_equal(left: Mapping[str, Any] | None, right: Mapping[str, Any] | None) -> bool:
    return canonical_query(left) == canonical_query(right)


@dataclass
class CacheState:
    last_query: dict[str, Any] | None = None
    last_dispatch_time: int | None = None
    """Epoch milliseconds of the last dispatch."""


class QueryCacheGate:
    """Reuse-vs-dispatch decision over a single :class:`CacheState`."""

    def __init__(self) -> None:
        self.state = CacheState()

    def decide(self, effective_query: Mapping[str, Any], client_paging: bool) -> CacheDecision:
        last = self.state.last_query
        if client_paging and last is not None and queries_equal(effective_query, last):
            return CacheDecision.REUSE
        return CacheDecision.DISPATCH

    def record_dispatch(self, effective_query: Mapping[str, Any], now_ms: int) -> None:
        # Never alias the caller's mapping.
        self.state.last_query = copy.deepcopy(dict(effective_query))
        self.state.last_dispatch_time = now_ms
