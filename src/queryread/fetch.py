"""Generic fetch pipeline: resolve items, then sort, page and deliver them.

The store only decides *which* items answer a request
(:meth:`~queryread.store.QueryReadStore.fetch_items`); this module does
the rest of a read: sort by the request's sort spec, report the total,
cut the ``start``/``count`` window and hand the page to the request's
callbacks.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from queryread.exceptions import QueryReadError, StoreTransportError
from queryread.models.item import Item
from queryread.models.request import FetchRequest
from queryread.sorter import sort_items

if TYPE_CHECKING:
    from queryread.store import QueryReadStore


async def simple_fetch(store: QueryReadStore, request: FetchRequest) -> list[Item]:
    """Run *request* against *store* and return the requested page.

    ``request.on_error`` is called with any transport error, which is then
    re-raised to the awaiting caller. Any other failure of the dispatch task
    is raised as is; a store closed mid-fetch raises :class:`QueryReadError`.
    """
    loop = asyncio.get_running_loop()
    done: asyncio.Future[list[Item]] = loop.create_future()

    def _on_complete(items: list[Item], _request: FetchRequest) -> None:
        if not done.done():
            done.set_result(items)

    def _on_error(error: Exception, _request: FetchRequest) -> None:
        if not done.done():
            done.set_exception(error)

    def _on_task_done(task: asyncio.Task[list[Item] | None]) -> None:
        if done.done():
            return
        if task.cancelled():
            done.set_exception(QueryReadError("Store closed while the fetch was in flight"))
            return
        exc = task.exception()
        if exc is not None:
            done.set_exception(exc)

    task = store.fetch_items(request, _on_complete, _on_error)
    if task is not None:
        task.add_done_callback(_on_task_done)
    try:
        items = await done
    except StoreTransportError as exc:
        if request.on_error is not None:
            request.on_error(exc, request)
        raise

    return deliver(store, request, items)


def deliver(store: QueryReadStore, request: FetchRequest, items: Sequence[Item]) -> list[Item]:
    """Sort, page and hand *items* to the request callbacks. Returns the page."""

    def _value(item: Item, attribute: str) -> Any:
        return store.get_value(item, attribute, None)

    ordered = sort_items(items, request.sort, _value, store.comparator_map)
    if request.on_begin is not None:
        request.on_begin(len(ordered), request)

    # count of None or 0 means "everything from start".
    end = request.start + request.count if request.count else len(ordered)
    page = ordered[request.start:end]

    if request.on_item is not None:
        for item in page:
            request.on_item(item, request)
        if request.on_complete is not None:
            request.on_complete(None, request)
    elif request.on_complete is not None:
        request.on_complete(page, request)
    return page
