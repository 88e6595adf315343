"""Multi-key attribute sorting for fetched items."""

from __future__ import annotations

import functools
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from queryread.models.item import Item
from queryread.models.request import SortField

Comparator = Callable[[Any, Any], int]
ValueGetter = Callable[[Item, str], Any]


def basic_comparator(a: Any, b: Any) -> int:
    """Order two attribute values; ``None`` sorts after everything else.

    Values of types that do not support ``<`` against each other are
    compared by their string form.
    """
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    try:
        if a > b:
            return 1
        if a < b:
            return -1
        return 0
    except TypeError:
        sa, sb = str(a), str(b)
        return (sa > sb) - (sa < sb)


def create_sort_key(
    sort: Sequence[SortField],
    get_value: ValueGetter,
    comparator_map: Mapping[str, Comparator] | None = None,
) -> Callable[[Item], Any]:
    """Build a ``key=`` callable for :func:`sorted` from a sort spec."""
    comparators = comparator_map or {}

    def _compare(left: Item, right: Item) -> int:
        for field in sort:
            compare = comparators.get(field.attribute, basic_comparator)
            result = compare(get_value(left, field.attribute), get_value(right, field.attribute))
            if result:
                return -result if field.descending else result
        return 0

    return functools.cmp_to_key(_compare)


def sort_items(
    items: Sequence[Item],
    sort: Sequence[SortField],
    get_value: ValueGetter,
    comparator_map: Mapping[str, Comparator] | None = None,
) -> list[Item]:
    """Return a sorted copy of *items*; the input sequence is left untouched."""
    if not sort:
        return list(items)
    return sorted(items, key=create_sort_key(sort, get_value, comparator_map))
