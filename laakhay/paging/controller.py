"""Controller binding change listeners to a pagination engine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any, Generic, TypeVar

from .engines.base import BasePaginator
from .engines.single import SmartPaginator
from .listeners import FilterListener, OrderListener, RefreshListener

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PaginationController(Generic[T]):
    """Routes listener notifications to engine operations.

    - refresh listener set to True -> ``engine.refresh()`` scheduled as a task
    - filter listener change -> ``engine.filter(listener.search_term)``
    - order listener change -> ``engine.order_by(listener.order_compare)``

    A public controller (``is_public=True``) leaves its engine running when
    the controller is disposed, so the engine can outlive the view that
    created it.
    """

    def __init__(
        self,
        engine: BasePaginator[T],
        *,
        refresh_listeners: Sequence[RefreshListener] | None = None,
        filter_listeners: Sequence[FilterListener[T]] | None = None,
        order_listeners: Sequence[OrderListener[T]] | None = None,
        is_public: bool = False,
    ) -> None:
        self.engine = engine
        self.refresh_listeners = list(refresh_listeners or [])
        self.filter_listeners = list(filter_listeners or [])
        self.order_listeners = list(order_listeners or [])
        self.is_public = is_public

        self._detach: list[Callable[[], None]] = []
        self._tasks: set[asyncio.Task[None]] = set()
        self._disposed = False

        for refresh_listener in self.refresh_listeners:
            self._detach.append(refresh_listener.add_listener(self._schedule_refresh))
        for filter_listener in self.filter_listeners:
            self._detach.append(filter_listener.add_listener(self._bind_filter(filter_listener)))
        for order_listener in self.order_listeners:
            self._detach.append(order_listener.add_listener(self._bind_order(order_listener)))

    @classmethod
    def of(
        cls,
        engine_cls: type[BasePaginator[Any]] = SmartPaginator,
        *,
        refresh_listeners: Sequence[RefreshListener] | None = None,
        filter_listeners: Sequence[FilterListener[Any]] | None = None,
        order_listeners: Sequence[OrderListener[Any]] | None = None,
        is_public: bool = False,
        **engine_kwargs: Any,
    ) -> PaginationController[Any]:
        """Build an engine and its controller in one step.

        Example:
            >>> controller = PaginationController.of(
            ...     request=PaginationRequest(page_size=20),
            ...     fetch=fetch_orders,
            ...     refresh_listeners=[pull_to_refresh],
            ... )
            >>> await controller.engine.fetch()
        """
        engine = engine_cls(**engine_kwargs)
        return cls(
            engine,
            refresh_listeners=refresh_listeners,
            filter_listeners=filter_listeners,
            order_listeners=order_listeners,
            is_public=is_public,
        )

    @property
    def pending_refreshes(self) -> int:
        return len(self._tasks)

    async def dispose(self) -> None:
        """Detach listeners, wait for scheduled refreshes, dispose the engine.

        The engine is kept alive for public controllers.
        """
        if self._disposed:
            return
        self._disposed = True

        for detach in self._detach:
            detach()
        self._detach.clear()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
            self._tasks.clear()

        if not self.is_public:
            await self.engine.dispose()

    def _schedule_refresh(self) -> None:
        if self._disposed or self.engine.disposed:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Refresh requested without a running event loop; ignoring")
            return
        task = loop.create_task(self.engine.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._on_refresh_done)

    def _on_refresh_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Scheduled refresh failed: {error}")

    def _bind_filter(self, listener: FilterListener[T]) -> Callable[[], None]:
        def apply() -> None:
            self.engine.filter(listener.search_term)

        return apply

    def _bind_order(self, listener: OrderListener[T]) -> Callable[[], None]:
        def apply() -> None:
            self.engine.order_by(listener.order_compare)

        return apply
