"""Read-only store that fetches items from a remote query endpoint on demand."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, ClassVar

import aiohttp
from pydantic import ValidationError

from queryread._cache import CacheDecision, QueryCacheGate
from queryread._redact import redact_for_log
from queryread._registry import ItemRegistry
from queryread._transport import HttpTransport, Transport
from queryread.config import StoreConfig
from queryread.exceptions import (
    InvalidAttributeError,
    InvalidItemError,
    QueryReadError,
    StoreTransportError,
)
from queryread.fetch import simple_fetch
from queryread.models.item import Item
from queryread.models.request import FetchRequest
from queryread.models.response import ItemsResponse
from queryread.sorter import Comparator

_logger = logging.getLogger(__name__)

#: The only capability a :class:`QueryReadStore` reports.
READ_FEATURE = "data.api.Read"

CompleteHandler = Callable[[list[Item], FetchRequest], None]
ErrorHandler = Callable[[Exception, FetchRequest], None]

_MISSING: Any = object()


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class QueryReadStore:
    """Lazily populated, read-only view over a server-side dataset.

    Each fetch sends its query (or the request's ``server_query``) to the
    configured endpoint, unless client paging is enabled and the query
    equals the last one sent, in which case the items already held are
    reused. Items handed out carry this store's ownership token and are
    rejected by every other store instance.

    Usage::

        config = StoreConfig(url="https://example.com/search")
        async with QueryReadStore(config) as store:
            page = await store.fetch(FetchRequest(query={"name": "ac"}, count=10))
            names = [store.get_value(item, "name") for item in page]
    """

    #: Per-attribute comparators used when sorting; ``None`` uses the default ordering.
    comparator_map: ClassVar[dict[str, Comparator] | None] = None

    def __init__(
        self,
        config: StoreConfig,
        *,
        transport: Transport | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._external_transport = transport is not None
        self._transport = transport
        self._registry = ItemRegistry()
        self._gate = QueryCacheGate()
        self._pending: set[asyncio.Task[list[Item] | None]] = set()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> QueryReadStore:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(
                self._http_session,
                timeout=self._config.request_timeout,
                headers=self._config.headers,
            )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def items(self) -> list[Item]:
        """The current result set (items of the last successful fetch)."""
        return self._registry.items

    @property
    def last_server_query(self) -> dict[str, Any] | None:
        """Last query dispatched to the server, whether or not it succeeded."""
        return self._gate.state.last_query

    @property
    def last_request_timestamp(self) -> int | None:
        """Epoch milliseconds of the last request sent to the server."""
        return self._gate.state.last_dispatch_time

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise QueryReadError("Store not initialized. Use 'async with QueryReadStore(...) as store:'")
        return self._transport

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch(self, request: FetchRequest) -> list[Item]:
        """Fetch, sort and page items; see :func:`queryread.fetch.simple_fetch`."""
        return await simple_fetch(self, request)

    def fetch_items(
        self,
        request: FetchRequest,
        on_complete: CompleteHandler,
        on_error: ErrorHandler,
    ) -> asyncio.Task[list[Item] | None] | None:
        """Resolve *request* to a candidate item list.

        When the cached items can be reused, ``on_complete`` is called before
        this method returns and ``None`` is returned. Otherwise the request
        is sent to the server in a new task, which is returned; the callbacks
        fire from that task. An exception raised by either callback is not
        caught: it ends the task and is raised by awaiting it. Items are
        neither sorted nor paged here.
        """
        server_query = request.effective_query
        decision = self._gate.decide(server_query, self._config.do_client_paging)
        if decision is CacheDecision.REUSE:
            if _logger.isEnabledFor(logging.DEBUG):
                _logger.debug(
                    "Reusing %d cached items for %s",
                    len(self._registry.items),
                    redact_for_log(dict(server_query)),
                )
            on_complete(self._registry.items, request)
            return None

        transport = self._require_transport()
        loop = asyncio.get_running_loop()
        self._gate.record_dispatch(server_query, _now_ms())
        task = loop.create_task(
            self._dispatch(transport, dict(server_query), request, on_complete, on_error)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _dispatch(
        self,
        transport: Transport,
        params: dict[str, Any],
        request: FetchRequest,
        on_complete: CompleteHandler,
        on_error: ErrorHandler,
    ) -> list[Item] | None:
        url = self._config.url
        try:
            payload = await transport.send(url, self._config.http_method, params)
            response = self._decode_response(payload)
        except StoreTransportError as exc:
            _logger.debug("Fetch from %s failed: %s", url, exc)
            on_error(exc, request)
            return None

        items = self._registry.replace_all(response.items)
        _logger.debug("Loaded %d items from %s", len(items), url)
        on_complete(items, request)
        return items

    def _decode_response(self, payload: Any) -> ItemsResponse:
        url = self._config.url
        if not isinstance(payload, Mapping):
            raise StoreTransportError(f"Response from {url} is not an object", url=url)
        try:
            return ItemsResponse.from_payload(dict(payload))
        except ValidationError as exc:
            raise StoreTransportError(f"Response from {url} has no usable 'items' list: {exc}", url=url) from exc

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def get_value(self, item: Item, attribute: str, default: Any = _MISSING) -> Any:
        """Return *attribute* of *item*, or *default* when the item lacks it."""
        self._assert_is_item(item)
        if not self.has_attribute(item, attribute):
            if default is not _MISSING:
                return default
            raise InvalidAttributeError(
                f"{type(self).__name__}.get_value(): Item does not have the attribute '{attribute}'."
            )
        return item.data[attribute]

    def get_values(self, item: Item, attribute: str) -> list[Any]:
        """Items hold scalar attributes only, so this is ``[value]`` or ``[]``."""
        if self.has_attribute(item, attribute):
            return [item.data[attribute]]
        return []

    def get_attributes(self, item: Item) -> list[str]:
        self._assert_is_item(item)
        return list(item.data)

    def has_attribute(self, item: Any, attribute: str) -> bool:
        if not self.is_item(item):
            return False
        self._assert_is_attribute(attribute)
        return attribute in item.data

    def contains_value(self, item: Item, attribute: str, value: Any) -> bool:
        return any(v == value for v in self.get_values(item, attribute))

    def is_item(self, something: Any) -> bool:
        """True iff *something* was produced by this store. Never raises."""
        return self._registry.owns(something)

    def is_item_loaded(self, something: Any) -> bool:
        # An item that exists is fully loaded.
        return self.is_item(something)

    def load_item(self, item: Any) -> None:
        """No-op: items arrive complete with each fetch."""

    def get_features(self) -> frozenset[str]:
        return frozenset({READ_FEATURE})

    def close(self, request: FetchRequest | None = None) -> None:
        """No-op; there are no per-request resources to release."""

    def get_label(self, item: Item) -> str | None:
        """Override to return a human-readable label for *item*."""
        return None

    def get_label_attributes(self, item: Item) -> list[str] | None:
        """Override to name the attributes :meth:`get_label` is built from."""
        return None

    def _assert_is_item(self, item: Any) -> None:
        if not self.is_item(item):
            raise InvalidItemError(
                f"{type(self).__name__}: a function was passed an item argument that was not an item"
            )

    def _assert_is_attribute(self, attribute: Any) -> None:
        if not isinstance(attribute, str):
            raise InvalidAttributeError(
                f"{type(self).__name__}: '{attribute}' is not a valid attribute identifier."
            )
