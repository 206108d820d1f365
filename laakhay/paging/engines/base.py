"""Shared pagination engine machinery.

Architecture:
    BasePaginator owns everything the flat and grouped engines have in
    common: request building, the page window, the retry handler, the
    generation token, live-stream tasks and the state channel. Subclasses
    decide how the aggregated list is derived from raw items
    (``_aggregate``) and how a Loaded snapshot is assembled
    (``_make_loaded``).

Concurrency:
    Engines run on one asyncio event loop and are not thread-safe. Every
    fetch captures a fresh generation token; ``refresh`` and ``cancel``
    bump it. A fetch whose token is stale when the provider returns is
    dropped without emitting or touching the page window. The provider call
    itself is never aborted.

State flow:
    Initial --fetch ok--> Loaded --fetch/filter/insert--> Loaded
    Initial/Loaded --fetch fails--> Error --fetch/refresh--> Loaded | Error
"""

from __future__ import annotations

import asyncio
import functools
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from time import perf_counter
from typing import Any, Generic, TypeVar, assert_never

from ..core.constants import DEFAULT_MAX_PAGES_IN_MEMORY
from ..core.exceptions import EngineDisposedError
from ..core.types import (
    ClearCallback,
    CompareBy,
    FetchFunction,
    IdentityFunction,
    InsertCallback,
    StreamFunction,
    WhereChecker,
)
from ..models.meta import PaginationMeta
from ..models.page import Page
from ..models.request import PaginationRequest
from ..models.state import Error, Initial, Loaded, PaginationState
from ..runtime.channel import StateCallback, StateChannel
from ..runtime.retry import PASSTHROUGH_ERRORS, RetryConfig, RetryHandler, normalize_error
from ..runtime.telemetry import (
    log_fetch_discarded,
    log_fetch_failed,
    log_filter_applied,
    log_page_evicted,
    log_page_fetched,
    log_stream_failed,
)
from ..runtime.window import PageWindow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BasePaginator(ABC, Generic[T]):
    """Abstract base class for pagination engines."""

    def __init__(
        self,
        *,
        request: PaginationRequest,
        fetch: FetchFunction | None = None,
        stream: StreamFunction | None = None,
        retry_config: RetryConfig | None = None,
        max_pages_in_memory: int = DEFAULT_MAX_PAGES_IN_MEMORY,
        on_insert: InsertCallback | None = None,
        on_clear: ClearCallback | None = None,
        identity: IdentityFunction | None = None,
        name: str | None = None,
    ) -> None:
        """Initialize engine.

        Args:
            request: Initial request (page size, cursor and filters are reused)
            fetch: Async page fetch function
            stream: Live stream factory keyed by the current request
            retry_config: Retry policy for fetches (None = single attempt)
            max_pages_in_memory: Page window bound (<= 0 disables eviction)
            on_insert: Called as ``on_insert(all_items, new_items)`` whenever items arrive
            on_clear: Called when a refresh drops the current data
            identity: Key function used by ``add_or_update`` (default: equality)
            name: Engine name used in logs
        """
        if fetch is None and stream is None:
            raise ValueError("A pagination engine needs a fetch function or a stream factory")

        self.name = name or type(self).__name__
        self._fetch_fn = fetch
        self._stream_fn = stream
        self._retry = RetryHandler(retry_config, name=self.name) if retry_config is not None else None
        self._on_insert = on_insert
        self._on_clear = on_clear
        self._identity = identity

        self._initial_request = request
        self._current_request = request
        self._current_meta: PaginationMeta | None = None
        self._window: PageWindow[T] = PageWindow(max_pages_in_memory)

        self._token = 0
        self._did_fetch = False
        self._disposed = False

        self._filter: WhereChecker | None = None
        self._order: CompareBy | None = None

        # Background stream consumers keyed by source ("remote", "local")
        self._stream_tasks: dict[str, asyncio.Task[None]] = {}
        # Bumped whenever streams are torn down; late emissions of older streams are dropped
        self._stream_epoch = 0

        self._channel: StateChannel[PaginationState] = StateChannel(Initial())

    # ----------------------
    # Read-only state
    # ----------------------
    @property
    def state(self) -> PaginationState:
        """Most recently emitted snapshot."""
        return self._channel.value

    @property
    def initial_request(self) -> PaginationRequest:
        return self._initial_request

    @property
    def current_request(self) -> PaginationRequest:
        """Request of the last accepted page."""
        return self._current_request

    @property
    def meta(self) -> PaginationMeta | None:
        return self._current_meta

    @property
    def did_fetch(self) -> bool:
        """Whether at least one page (or stream emission) has been accepted."""
        return self._did_fetch

    @property
    def has_reached_end(self) -> bool:
        return self._current_meta is not None and not self._current_meta.has_next

    @property
    def pages_in_memory(self) -> int:
        return len(self._window)

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def active_filter(self) -> WhereChecker | None:
        return self._filter

    # ----------------------
    # Subscriptions
    # ----------------------
    def subscribe(self, callback: StateCallback[PaginationState], *, replay: bool = False) -> str:
        """Receive every future state synchronously, in emission order.

        Returns a subscription id to later unsubscribe.
        """
        return self._channel.subscribe(callback, replay=replay)

    def unsubscribe(self, subscription_id: str) -> None:
        self._channel.unsubscribe(subscription_id)

    def states(self, *, replay: bool = True) -> AsyncIterator[PaginationState]:
        """Async iterator over states; ends when the engine is disposed."""
        return self._channel.listen(replay=replay)

    # ----------------------
    # Paging
    # ----------------------
    async def fetch(
        self,
        request_override: PaginationRequest | None = None,
        limit: int | None = None,
    ) -> None:
        """Fetch the next page.

        Before any page has been accepted this behaves as :meth:`refresh`.
        Once the end has been reached it is a no-op. Failures never raise
        here; they become an Error state.

        Args:
            request_override: Base request to derive the next page from
            limit: Page size override for this and later pages
        """
        self._ensure_active()

        if self._fetch_fn is None:
            # Stream-only engine: data arrives through the subscription
            remote = self._stream_tasks.get("remote")
            if remote is None or remote.done() or isinstance(self.state, Error):
                await self.refresh(request_override=request_override, limit=limit)
            return

        if not self._did_fetch:
            await self.refresh(request_override=request_override, limit=limit)
            return

        if self.has_reached_end:
            return

        request = self._build_request(reset=False, override=request_override, limit=limit)
        await self._fetch(request, reset=False)

    async def refresh(
        self,
        request_override: PaginationRequest | None = None,
        limit: int | None = None,
    ) -> None:
        """Drop everything and load page 1 again.

        Cancels any in-flight fetch and live stream, calls ``on_clear``,
        empties the page window and re-attaches streams after the first page.
        """
        self._ensure_active()
        self.cancel()
        self._cancel_streams()
        if self._on_clear is not None:
            self._run_callback("on_clear", self._on_clear)
        self._did_fetch = False
        self._window.clear()
        self._current_meta = None

        request = self._build_request(reset=True, override=request_override, limit=limit)

        if self._fetch_fn is None:
            self._current_request = request
            self._attach_streams(request)
            return

        await self._fetch(request, reset=True)

    def cancel(self) -> None:
        """Invalidate in-flight fetches; their results will be discarded."""
        self._token += 1

    async def dispose(self) -> None:
        """Cancel work, stop streams and close the state channel."""
        if self._disposed:
            return
        self.cancel()
        self._disposed = True
        await self._stop_streams()
        self._channel.close()

    async def __aenter__(self) -> BasePaginator[T]:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.dispose()

    # ----------------------
    # Client-side view
    # ----------------------
    def filter(self, predicate: WhereChecker | None = None) -> None:
        """Narrow the visible list to items matching ``predicate``.

        The aggregated list is kept, so ``filter(None)`` restores the
        unfiltered view without refetching. The filter stays active for
        pages fetched later.
        """
        self._filter = predicate
        match self.state:
            case Loaded() as loaded:
                all_items = list(loaded.all_items)
                visible = self._project(all_items)
                if predicate is not None:
                    log_filter_applied(engine=self.name, before=len(all_items), after=len(visible))
                self._emit(self._make_loaded(all_items, visible, loaded.meta, loaded.has_reached_end))
            case Initial() | Error():
                return
            case unreachable:
                assert_never(unreachable)

    def order_by(self, compare: CompareBy | None = None) -> None:
        """Re-sort the visible list with a ``(a, b) -> int`` comparator.

        ``None`` restores aggregated order. The ordering stays active for
        pages fetched later.
        """
        self._order = compare
        match self.state:
            case Loaded() as loaded:
                all_items = list(loaded.all_items)
                self._emit(
                    self._make_loaded(
                        all_items, self._project(all_items), loaded.meta, loaded.has_reached_end
                    )
                )
            case Initial() | Error():
                return
            case unreachable:
                assert_never(unreachable)

    # ----------------------
    # Local edits
    # ----------------------
    def insert(self, item: T, index: int = 0) -> None:
        """Insert ``item`` into the current snapshot without refetching.

        The page window is left untouched, so the next fetch or refresh
        rebuilds the list from fetched pages. No-op unless Loaded.
        """
        match self.state:
            case Loaded() as loaded:
                visible = list(loaded.items)
                visible.insert(index, item)
                all_items = list(loaded.all_items)
                all_items.insert(index, item)
                self._notify_insert(all_items, [item])
                self._emit(self._rebuild_after_edit(loaded, all_items, visible))
            case Initial() | Error():
                logger.debug("Ignoring insert outside Loaded state", extra={"engine": self.name})
            case unreachable:
                assert_never(unreachable)

    def add_or_update(self, item: T, index: int = 0) -> None:
        """Replace the item with the same identity, or insert at ``index``."""
        match self.state:
            case Loaded() as loaded:
                visible = list(loaded.items)
                all_items = list(loaded.all_items)
                replaced = False
                for items in (visible, all_items):
                    for position, existing in enumerate(items):
                        if self._same_item(existing, item):
                            items[position] = item
                            replaced = True
                            break
                if not replaced:
                    self.insert(item, index)
                    return
                self._emit(self._rebuild_after_edit(loaded, all_items, visible))
            case Initial() | Error():
                logger.debug("Ignoring add_or_update outside Loaded state", extra={"engine": self.name})
            case unreachable:
                assert_never(unreachable)

    # ----------------------
    # Internals
    # ----------------------
    def _rebuild_after_edit(self, loaded: Loaded[T], all_items: list[T], visible: list[T]) -> Loaded[T]:
        """Snapshot after a local edit. Grouped engines regroup here."""
        return loaded.copy_with(items=tuple(visible), all_items=tuple(all_items))

    @abstractmethod
    def _aggregate(self, items: list[T]) -> list[T]:
        """Derive the aggregated list from raw window/stream items."""

    @abstractmethod
    def _make_loaded(
        self,
        all_items: list[T],
        visible: list[T],
        meta: PaginationMeta,
        has_reached_end: bool,
    ) -> Loaded[T]:
        """Assemble a Loaded snapshot."""

    def _project(self, all_items: list[T]) -> list[T]:
        """Apply the active order and filter to the aggregated list."""
        items = list(all_items)
        if self._order is not None:
            items = sorted(items, key=functools.cmp_to_key(self._order))
        if self._filter is not None:
            items = [item for item in items if self._filter(item)]
        return items

    def _build_request(
        self,
        *,
        reset: bool,
        override: PaginationRequest | None,
        limit: int | None,
    ) -> PaginationRequest:
        base = override or (self._initial_request if reset else self._current_request)
        page_size = limit or base.page_size or self._initial_request.page_size
        if reset:
            return base.copy_with(page=1, page_size=page_size)

        changes: dict[str, Any] = {"page": base.page + 1, "page_size": page_size}
        if override is None and self._current_meta is not None and self._current_meta.next_cursor:
            changes["cursor"] = self._current_meta.next_cursor
        return base.copy_with(**changes)

    async def _call_provider(self, request: PaginationRequest) -> Sequence[T] | Page[T]:
        assert self._fetch_fn is not None
        fetch_fn = self._fetch_fn
        if self._retry is None:
            return await fetch_fn(request)

        return await self._retry.execute(lambda: fetch_fn(request))

    async def _fetch(self, request: PaginationRequest, *, reset: bool) -> None:
        self._token += 1
        token = self._token
        started = perf_counter()

        try:
            result = await self._call_provider(request)
        except PASSTHROUGH_ERRORS:
            raise
        except BaseException as raw:
            error = normalize_error(raw)
            if token != self._token:
                log_fetch_discarded(
                    engine=self.name, page=request.page, token=token, current_token=self._token
                )
                return
            log_fetch_failed(engine=self.name, page=request.page, error=error)
            self._emit(Error.from_exception(error, meta=self._current_meta))
            return

        if token != self._token:
            log_fetch_discarded(
                engine=self.name, page=request.page, token=token, current_token=self._token
            )
            return

        items, page_meta = _unpack(result)
        self._did_fetch = True
        self._current_request = request

        if reset:
            self._window.reset(items)
        else:
            evicted = self._window.append(items)
            if evicted:
                log_page_evicted(engine=self.name, evicted=evicted, resident=len(self._window))

        has_next = _compute_has_next(items, request.page_size, page_meta)
        meta = _build_meta(request, has_next, page_meta)
        self._current_meta = meta

        aggregated = self._aggregate(self._window.items())
        self._notify_insert(aggregated, items)
        self._emit(self._make_loaded(aggregated, self._project(aggregated), meta, not has_next))

        log_page_fetched(
            engine=self.name,
            page=request.page,
            items=len(items),
            total_items=len(aggregated),
            has_next=has_next,
            latency_ms=(perf_counter() - started) * 1000.0,
        )

        if reset:
            self._attach_streams(request)

    def _attach_streams(self, request: PaginationRequest) -> None:
        """Start live sources after a refresh. Subclasses may add more."""
        if self._stream_fn is not None:
            self._start_stream_task(
                "remote", self._consume_stream(self._stream_fn(request), request, self._stream_epoch)
            )

    def _start_stream_task(self, source: str, coro: Any) -> None:
        previous = self._stream_tasks.pop(source, None)
        if previous is not None and not previous.done():
            previous.cancel()
        self._stream_tasks[source] = asyncio.create_task(coro)

    async def _consume_stream(
        self,
        stream: AsyncIterator[Sequence[T]],
        request: PaginationRequest,
        epoch: int,
    ) -> None:
        try:
            async for batch in stream:
                if epoch != self._stream_epoch:
                    return
                items = list(batch)
                self._did_fetch = True
                has_next = _compute_has_next(items, request.page_size, None)
                meta = _build_meta(request, has_next, None)
                self._current_meta = meta
                aggregated = self._aggregate(items)
                self._notify_insert(aggregated, items)
                self._emit(
                    self._make_loaded(aggregated, self._project(aggregated), meta, not has_next)
                )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if epoch != self._stream_epoch:
                return
            log_stream_failed(engine=self.name, source="remote", error=e)
            self._emit(Error.from_exception(e, meta=self._current_meta))
        else:
            logger.debug("Stream completed", extra={"engine": self.name, "source": "remote"})

    def _cancel_streams(self) -> None:
        self._stream_epoch += 1
        for task in self._stream_tasks.values():
            if not task.done():
                task.cancel()
        self._stream_tasks.clear()

    async def _stop_streams(self) -> None:
        tasks = list(self._stream_tasks.values())
        self._cancel_streams()
        # Wait for tasks to complete
        await asyncio.gather(*tasks, return_exceptions=True)

    def _emit(self, state: PaginationState) -> None:
        self._channel.publish(state)

    def _notify_insert(self, all_items: list[T], new_items: list[T]) -> None:
        if self._on_insert is not None:
            self._run_callback("on_insert", self._on_insert, list(all_items), list(new_items))

    def _same_item(self, a: T, b: T) -> bool:
        if self._identity is None:
            return a == b
        return self._identity(a) == self._identity(b)

    def _ensure_active(self) -> None:
        if self._disposed:
            raise EngineDisposedError(f"{self.name} has been disposed")

    def _run_callback(self, label: str, callback: Any, *args: Any) -> None:
        try:
            callback(*args)
        except Exception as e:
            logger.error(f"Error in {label} callback: {e}", exc_info=True)


def _unpack(result: Sequence[Any] | Page[Any]) -> tuple[list[Any], PaginationMeta | None]:
    if isinstance(result, Page):
        return list(result.items), result.meta
    return list(result), None


def _compute_has_next(items: list[Any], page_size: int | None, page_meta: PaginationMeta | None) -> bool:
    """Fewer items than requested means end of data."""
    if page_meta is not None:
        return page_meta.has_next
    if page_size is None:
        return len(items) > 0
    return len(items) >= page_size


def _build_meta(
    request: PaginationRequest,
    has_next: bool,
    page_meta: PaginationMeta | None,
) -> PaginationMeta:
    if page_meta is None:
        return PaginationMeta(
            page=request.page,
            page_size=request.page_size,
            has_next=has_next,
            has_previous=request.page > 1,
        )
    return page_meta.copy_with(
        page=page_meta.page if page_meta.page is not None else request.page,
        page_size=page_meta.page_size if page_meta.page_size is not None else request.page_size,
        has_next=has_next,
        has_previous=page_meta.has_previous or request.page > 1,
    )
