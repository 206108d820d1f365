"""Grouped pagination engine.

Architecture:
    GroupedPaginator extends the flat engine pipeline with a sort step and a
    grouping step. Every membership change (fetch, stream tick, local stream
    tick, filter, order, insert) runs:

        sort -> order comparator -> filter -> group

    Grouping is recomputed from scratch each time; no group state is carried
    between snapshots.

Local stream:
    An optional zero-argument ``local_stream`` factory (for example a local
    cache or database watcher) is attached after the first page of every
    refresh. Each snapshot replaces the aggregated list while the engine is
    Loaded. Its errors are logged and never change state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Hashable, Iterable, Mapping, Sequence
from typing import Any, Generic, TypeVar, assert_never

from ..core.types import LocalStreamFunction
from ..models.meta import PaginationMeta
from ..models.request import PaginationRequest
from ..models.state import Error, Group, Initial, Loaded
from ..runtime.telemetry import log_stream_failed
from .base import BasePaginator

logger = logging.getLogger(__name__)

K = TypeVar("K")
T = TypeVar("T")

GroupKeyGenerator = Callable[[list[Any]], Iterable[Any] | Mapping[Any, Sequence[Any]]]
SortFunction = Callable[[list[Any]], Sequence[Any] | None]


def group_by(key: Callable[[T], Hashable]) -> Callable[[list[T]], list[Group[Any, T]]]:
    """Build a group key generator from a per-item key function.

    Groups appear in first-seen order and keep item order within a group.

    Example:
        >>> paginator = GroupedPaginator(
        ...     request=PaginationRequest(page_size=50),
        ...     fetch=fetch_messages,
        ...     group_key_generator=group_by(lambda m: m.sent_at.date()),
        ... )
    """

    def generate(items: list[T]) -> list[Group[Any, T]]:
        buckets: dict[Hashable, list[T]] = {}
        for item in items:
            buckets.setdefault(key(item), []).append(item)
        return [Group(key=k, items=tuple(v)) for k, v in buckets.items()]

    return generate


class GroupedPaginator(BasePaginator[T], Generic[K, T]):
    """Pages items and presents them as ordered (key, items) groups."""

    def __init__(
        self,
        *,
        group_key_generator: GroupKeyGenerator,
        sort: SortFunction | None = None,
        local_stream: LocalStreamFunction | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize engine.

        Args:
            group_key_generator: Maps the visible list to (key, items) pairs,
                Group entries or a key -> items mapping
            sort: Sorts the aggregated list (may sort in place and return None)
            local_stream: Zero-argument factory of a local item-list stream
            **kwargs: Forwarded to BasePaginator
        """
        super().__init__(**kwargs)
        if group_key_generator is None:
            raise ValueError("GroupedPaginator requires a group_key_generator")
        self._group_key_generator = group_key_generator
        self._sort = sort
        self._local_stream_fn = local_stream

    def insert_emit_state(self, new_items: Sequence[T]) -> None:
        """Append ``new_items``, then re-sort, regroup and emit.

        No-op unless Loaded.
        """
        match self.state:
            case Loaded() as loaded:
                added = list(new_items)
                aggregated = self._aggregate(list(loaded.all_items) + added)
                self._notify_insert(aggregated, added)
                self._emit(
                    self._make_loaded(
                        aggregated, self._project(aggregated), loaded.meta, loaded.has_reached_end
                    )
                )
            case Initial() | Error():
                logger.debug("Ignoring insert_emit_state outside Loaded state", extra={"engine": self.name})
            case unreachable:
                assert_never(unreachable)

    def _aggregate(self, items: list[T]) -> list[T]:
        if self._sort is None:
            return list(items)
        working = list(items)
        result = self._sort(working)
        return working if result is None else list(result)

    def _make_loaded(
        self,
        all_items: list[T],
        visible: list[T],
        meta: PaginationMeta,
        has_reached_end: bool,
    ) -> Loaded[T]:
        groups = self._group(visible)
        return Loaded(
            items=tuple(item for group in groups for item in group.items),
            all_items=tuple(all_items),
            meta=meta,
            has_reached_end=has_reached_end,
            groups=groups,
        )

    def _rebuild_after_edit(self, loaded: Loaded[T], all_items: list[T], visible: list[T]) -> Loaded[T]:
        aggregated = self._aggregate(all_items)
        return self._make_loaded(aggregated, self._project(aggregated), loaded.meta, loaded.has_reached_end)

    def _group(self, items: list[T]) -> tuple[Group[Any, T], ...]:
        raw = self._group_key_generator(list(items))
        entries = raw.items() if isinstance(raw, Mapping) else raw
        groups: list[Group[Any, T]] = []
        for entry in entries:
            if isinstance(entry, Group):
                groups.append(entry)
            else:
                key, members = entry
                groups.append(Group(key=key, items=tuple(members)))
        return tuple(groups)

    def _attach_streams(self, request: PaginationRequest) -> None:
        super()._attach_streams(request)
        if self._local_stream_fn is not None:
            self._start_stream_task(
                "local", self._consume_local_stream(self._local_stream_fn(), self._stream_epoch)
            )

    async def _consume_local_stream(self, stream: AsyncIterator[Sequence[T]], epoch: int) -> None:
        try:
            async for batch in stream:
                if epoch != self._stream_epoch:
                    return
                current = self.state
                if not isinstance(current, Loaded):
                    continue
                items = list(batch)
                aggregated = self._aggregate(items)
                self._notify_insert(aggregated, items)
                self._emit(
                    self._make_loaded(
                        aggregated, self._project(aggregated), current.meta, current.has_reached_end
                    )
                )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log_stream_failed(engine=self.name, source="local", error=e)
