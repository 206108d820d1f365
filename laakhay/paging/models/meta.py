"""Pagination metadata model.

Backends disagree on how they spell paging metadata (``limit`` vs
``pageSize``, ``next`` vs ``nextCursor``, snake_case vs camelCase).
PaginationMeta accepts all the common spellings on input and always
serializes to one camelCase form.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class PaginationMeta(BaseModel):
    """Outcome of the most recent fetch."""

    page: int | None = None
    page_size: int | None = Field(
        None,
        validation_alias=AliasChoices("pageSize", "page_size", "limit"),
        serialization_alias="pageSize",
    )
    next_cursor: str | None = Field(
        None,
        validation_alias=AliasChoices("nextCursor", "next_cursor", "next"),
        serialization_alias="nextCursor",
    )
    previous_cursor: str | None = Field(
        None,
        validation_alias=AliasChoices("previousCursor", "previous_cursor", "previous", "prev"),
        serialization_alias="previousCursor",
    )
    has_next: bool = Field(
        False,
        validation_alias=AliasChoices("hasNext", "has_next"),
        serialization_alias="hasNext",
    )
    has_previous: bool = Field(
        False,
        validation_alias=AliasChoices("hasPrevious", "has_previous"),
        serialization_alias="hasPrevious",
    )
    total_count: int | None = Field(
        None,
        validation_alias=AliasChoices("totalCount", "total_count", "total"),
        serialization_alias="totalCount",
    )
    fetched_at: datetime = Field(
        default_factory=datetime.now,
        validation_alias=AliasChoices("fetchedAt", "fetched_at"),
        serialization_alias="fetchedAt",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def infer_navigation_flags(cls, data: Any) -> Any:
        """Infer has_next/has_previous from cursor presence when not given."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if not _has_any(data, "hasNext", "has_next"):
            data["has_next"] = _first(data, "nextCursor", "next_cursor", "next") is not None
        if not _has_any(data, "hasPrevious", "has_previous"):
            data["has_previous"] = (
                _first(data, "previousCursor", "previous_cursor", "previous", "prev") is not None
            )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PaginationMeta:
        """Build meta from a loosely-typed backend map."""
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to camelCase keys, omitting unset optional values."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def copy_with(self, **changes: Any) -> PaginationMeta:
        """Return a copy with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)


def _has_any(data: dict[str, Any], *keys: str) -> bool:
    return any(data.get(key) is not None for key in keys)


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None
