"""Page result returned by fetch functions that report their own metadata."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from .meta import PaginationMeta

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """A single fetched page with optional backend metadata.

    Fetch functions may return a plain list of items, or a Page when the
    backend tells us more than the items alone (cursor pagination, total
    counts). When ``meta`` is present the engine trusts ``meta.has_next``
    instead of comparing the item count against the page size, and carries
    ``meta.next_cursor`` into the next request.

    Attributes:
        items: Items on this page
        meta: Backend-reported metadata (None if not available)
    """

    items: Sequence[T]
    meta: PaginationMeta | None = None

    @property
    def count(self) -> int:
        """Number of items on this page."""
        return len(self.items)

    @property
    def has_more(self) -> bool | None:
        """Backend's answer to "is there another page" (None if unknown)."""
        if self.meta is None:
            return None
        return self.meta.has_next
