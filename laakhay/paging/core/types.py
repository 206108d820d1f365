"""Callable signatures shared by engines, listeners and controllers."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Hashable, Sequence
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from ..models.page import Page
    from ..models.request import PaginationRequest

# Fetches one page; may return bare items or a Page carrying backend metadata
FetchFunction: TypeAlias = "Callable[[PaginationRequest], Awaitable[Sequence[Any] | Page[Any]]]"

# Live source keyed by the current request; each value replaces the aggregated list
StreamFunction: TypeAlias = "Callable[[PaginationRequest], AsyncIterator[Sequence[Any]]]"

# Local overlay source (grouped engine)
LocalStreamFunction: TypeAlias = Callable[[], AsyncIterator[Sequence[Any]]]

ListBuilder: TypeAlias = Callable[[list[Any]], Sequence[Any] | None]
WhereChecker: TypeAlias = Callable[[Any], bool]
CompareBy: TypeAlias = Callable[[Any, Any], int]
IdentityFunction: TypeAlias = Callable[[Any], Hashable]

# on_insert(all_items, new_items)
InsertCallback: TypeAlias = Callable[[list[Any], list[Any]], None]
ClearCallback: TypeAlias = Callable[[], None]
