"""Fetch request models.

:class:`FetchRequest` carries everything a caller hands to
:meth:`queryread.store.QueryReadStore.fetch`: the query, an optional
server-bound override, the paging window, the sort spec and the
completion callbacks.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from queryread.models.item import Item


def _check_query_keys(value: Any, path: str) -> None:
    """Reject non-string keys anywhere in a query; queries are compared as canonical JSON."""
    if isinstance(value, Mapping):
        for key, nested in value.items():
            if not isinstance(key, str):
                raise ValueError(f"{path} keys must be strings, got {key!r}")
            _check_query_keys(nested, f"{path}.{key}")
    elif isinstance(value, (list, tuple)):
        for index, nested in enumerate(value):
            _check_query_keys(nested, f"{path}[{index}]")


class SortField(BaseModel):
    """One key of a sort spec."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    attribute: str
    descending: bool = False

    @field_validator("attribute")
    @classmethod
    def _attribute_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("attribute must be non-empty")
        return value


@dataclass
class FetchRequest:
    """A read request.

    ``query`` is always required and is never modified by the store, so
    callers may keep comparing it across calls. ``server_query``, when
    given, is what actually goes to the server instead of ``query``.
    """

    query: Mapping[str, Any]
    server_query: Mapping[str, Any] | None = None
    query_options: dict[str, Any] = field(default_factory=dict)
    start: int = 0
    count: int | None = None
    sort: Sequence[SortField] = ()
    on_begin: Callable[[int, FetchRequest], None] | None = None
    on_item: Callable[[Item, FetchRequest], None] | None = None
    on_complete: Callable[[list[Item] | None, FetchRequest], None] | None = None
    on_error: Callable[[Exception, FetchRequest], None] | None = None

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"start must be >= 0, got {self.start}")
        if self.count is not None and self.count < 0:
            raise ValueError(f"count must be >= 0, got {self.count}")
        _check_query_keys(self.query, "query")
        if self.server_query is not None:
            _check_query_keys(self.server_query, "server_query")
        self.sort = tuple(s if isinstance(s, SortField) else SortField.model_validate(s) for s in self.sort)

    @property
    def effective_query(self) -> Mapping[str, Any]:
        """The payload sent to the server: ``server_query`` if set, else ``query``."""
        return self.query if self.server_query is None else self.server_query
