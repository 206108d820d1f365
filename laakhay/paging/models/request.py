"""Pagination request model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..core.constants import DEFAULT_PAGE


class PaginationRequest(BaseModel):
    """Describes which page to fetch.

    Immutable; derive new requests with :meth:`copy_with` so the
    ``page >= 1`` invariant is validated on every copy.
    """

    page: int = Field(DEFAULT_PAGE, gt=0)
    page_size: int | None = Field(None, gt=0)
    cursor: str | None = None
    filters: dict[str, Any] | None = None
    extra: dict[str, Any] | None = None

    model_config = ConfigDict(frozen=True)

    def copy_with(self, **changes: Any) -> PaginationRequest:
        """Return a validated copy with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)

    def next_page(self, *, page_size: int | None = None, cursor: str | None = None) -> PaginationRequest:
        """Request for the following page.

        Keeps the page size unless ``page_size`` overrides it. The cursor is
        replaced only when one is given.
        """
        changes: dict[str, Any] = {"page": self.page + 1}
        if page_size is not None:
            changes["page_size"] = page_size
        if cursor is not None:
            changes["cursor"] = cursor
        return self.copy_with(**changes)
