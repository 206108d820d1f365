"""Bounded page window.

The window keeps the most recently fetched pages in fetch order and evicts
from the front (oldest first) once more than ``max_pages`` are resident.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator
from itertools import chain
from typing import Generic, TypeVar

from ..core.constants import DEFAULT_MAX_PAGES_IN_MEMORY

T = TypeVar("T")


class PageWindow(Generic[T]):
    """FIFO window of fetched pages owned by a single engine."""

    def __init__(self, max_pages: int = DEFAULT_MAX_PAGES_IN_MEMORY) -> None:
        """Initialize page window.

        Args:
            max_pages: Maximum resident pages (<= 0 disables eviction)
        """
        self._max_pages = max_pages
        self._pages: deque[list[T]] = deque()

    @property
    def max_pages(self) -> int:
        return self._max_pages

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self) -> Iterator[list[T]]:
        return iter(self._pages)

    def append(self, items: Iterable[T]) -> int:
        """Add a page and evict the oldest pages past the bound.

        Args:
            items: Items of the new page

        Returns:
            Number of pages evicted
        """
        self._pages.append(list(items))
        return self._trim()

    def reset(self, items: Iterable[T] | None = None) -> None:
        """Drop every page, optionally starting over with a first page."""
        self._pages.clear()
        if items is not None:
            self._pages.append(list(items))

    def clear(self) -> None:
        self._pages.clear()

    def items(self) -> list[T]:
        """Flattened concatenation of all resident pages."""
        return list(chain.from_iterable(self._pages))

    def _trim(self) -> int:
        if self._max_pages <= 0:
            return 0
        evicted = 0
        while len(self._pages) > self._max_pages:
            self._pages.popleft()
            evicted += 1
        return evicted
