"""Engine state snapshots.

Architecture:
    PaginationState is a closed sum type of three frozen dataclasses. Engines
    never mutate a snapshot; every transition emits a new value. Consumers
    match on the variant:

        match state:
            case Initial():
                ...
            case Loaded(items=items, has_reached_end=done):
                ...
            case Error(error=error):
                ...
            case _:
                assert_never(state)

    "Reached end" is a flag on Loaded, not a separate variant, so a consumer
    that renders Loaded handles both.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Generic, TypeAlias, TypeVar

from ..core.enums import ErrorKind, classify_error
from .meta import PaginationMeta

K = TypeVar("K")
T = TypeVar("T")


@dataclass(frozen=True)
class Group(Generic[K, T]):
    """One (key, items) entry produced by a group key generator."""

    key: K
    items: tuple[T, ...]

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class Initial:
    """No fetch has completed yet."""


@dataclass(frozen=True)
class Loaded(Generic[T]):
    """Items are available.

    Attributes:
        items: Visible list (after list builder, sort, order and filter)
        all_items: Aggregated list the visible list was derived from
        meta: Metadata of the most recent fetch or stream emission
        has_reached_end: Whether forward paging is exhausted
        last_update: When this snapshot was produced
        groups: Grouped visible items (grouped engine only, else empty)
    """

    items: tuple[T, ...]
    all_items: tuple[T, ...]
    meta: PaginationMeta
    has_reached_end: bool = False
    last_update: datetime = field(default_factory=datetime.now)
    groups: tuple[Group[Any, T], ...] = ()

    def copy_with(self, **changes: Any) -> Loaded[T]:
        """Return a new snapshot with the given fields replaced.

        ``last_update`` is refreshed unless explicitly provided.
        """
        changes.setdefault("last_update", datetime.now())
        return replace(self, **changes)


@dataclass(frozen=True)
class Error:
    """The last fetch or stream failed terminally.

    Attributes:
        error: Terminal exception (after retries)
        kind: Classification of ``error``
        occurred_at: When the failure was recorded
        has_reached_end: Whether forward paging was exhausted before the failure
        meta: Metadata of the last accepted page (None if nothing loaded)
    """

    error: Exception
    kind: ErrorKind = ErrorKind.UNKNOWN
    occurred_at: datetime = field(default_factory=datetime.now)
    has_reached_end: bool = False
    meta: PaginationMeta | None = None

    @classmethod
    def from_exception(cls, error: Exception, meta: PaginationMeta | None = None) -> Error:
        """Build an error state with the error already classified.

        Args:
            error: Terminal error
            meta: Last good metadata, kept so consumers can still render paging position
        """
        return cls(
            error=error,
            kind=classify_error(error),
            has_reached_end=meta is not None and not meta.has_next,
            meta=meta,
        )


PaginationState: TypeAlias = Initial | Loaded[Any] | Error
