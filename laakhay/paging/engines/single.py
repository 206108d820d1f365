"""Flat-list pagination engine."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from ..core.types import ListBuilder
from ..models.meta import PaginationMeta
from ..models.state import Loaded
from .base import BasePaginator

T = TypeVar("T")


class SmartPaginator(BasePaginator[T], Generic[T]):
    """Pages a flat list of items.

    Fetched pages accumulate in a bounded window; the aggregated list is the
    window's concatenation passed through an optional ``list_builder``.

    Example:
        >>> async def fetch(request):
        ...     return await api.list_orders(page=request.page, size=request.page_size)
        >>> paginator = SmartPaginator(request=PaginationRequest(page_size=20), fetch=fetch)
        >>> paginator.subscribe(render)
        >>> await paginator.fetch()  # page 1
        >>> await paginator.fetch()  # page 2
    """

    def __init__(self, *, list_builder: ListBuilder | None = None, **kwargs: Any) -> None:
        """Initialize engine.

        Args:
            list_builder: Transforms the aggregated list (may sort in place and return None)
            **kwargs: Forwarded to BasePaginator
        """
        super().__init__(**kwargs)
        self._list_builder = list_builder

    def _aggregate(self, items: list[T]) -> list[T]:
        if self._list_builder is None:
            return list(items)
        working = list(items)
        built = self._list_builder(working)
        return working if built is None else list(built)

    def _make_loaded(
        self,
        all_items: list[T],
        visible: list[T],
        meta: PaginationMeta,
        has_reached_end: bool,
    ) -> Loaded[T]:
        return Loaded(
            items=tuple(visible),
            all_items=tuple(all_items),
            meta=meta,
            has_reached_end=has_reached_end,
        )
