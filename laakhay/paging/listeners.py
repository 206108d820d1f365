"""Change-notification channels that drive engines from the outside.

Each listener holds one piece of view state (a refresh flag, a filter
predicate, an ordering) and notifies its callbacks when that state changes.
A PaginationController wires listeners to an engine; the engine itself never
reads listener internals.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

from .core.types import CompareBy, WhereChecker

logger = logging.getLogger(__name__)

T = TypeVar("T")

ListenerCallback = Callable[[], None]


class ChangeListener:
    """Ordered set of zero-argument callbacks."""

    def __init__(self) -> None:
        self._callbacks: list[ListenerCallback] = []
        self._disposed = False

    @property
    def has_listeners(self) -> bool:
        return bool(self._callbacks)

    def add_listener(self, callback: ListenerCallback) -> Callable[[], None]:
        """Register ``callback``.

        Returns:
            Handle that removes the callback when called
        """
        if self._disposed:
            raise RuntimeError(f"{type(self).__name__} has been disposed")
        self._callbacks.append(callback)

        def remove() -> None:
            self.remove_listener(callback)

        return remove

    def remove_listener(self, callback: ListenerCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def notify_listeners(self) -> None:
        """Call every callback in registration order."""
        for callback in list(self._callbacks):
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in {type(self).__name__} callback: {e}", exc_info=True)

    def dispose(self) -> None:
        """Remove all callbacks; later ``add_listener`` calls fail."""
        self._callbacks.clear()
        self._disposed = True


class RefreshListener(ChangeListener):
    """Requests a refresh whenever ``refreshed`` is set to True."""

    def __init__(self) -> None:
        super().__init__()
        self._refreshed = False

    @property
    def refreshed(self) -> bool:
        return self._refreshed

    @refreshed.setter
    def refreshed(self, value: bool) -> None:
        self._refreshed = value
        if value:
            self.notify_listeners()


class FilterListener(ChangeListener, Generic[T]):
    """Holds the active filter predicate (None = no filter)."""

    def __init__(self, search_term: WhereChecker | None = None) -> None:
        super().__init__()
        self._search_term = search_term

    @property
    def search_term(self) -> WhereChecker | None:
        return self._search_term

    @search_term.setter
    def search_term(self, value: WhereChecker | None) -> None:
        if value is self._search_term:
            return
        self._search_term = value
        self.notify_listeners()


class OrderListener(ChangeListener, Generic[T]):
    """Holds the active ``(a, b) -> int`` comparator (None = fetch order)."""

    def __init__(self, order_compare: CompareBy | None = None) -> None:
        super().__init__()
        self._order_compare = order_compare

    @property
    def order_compare(self) -> CompareBy | None:
        return self._order_compare

    @order_compare.setter
    def order_compare(self, value: CompareBy | None) -> None:
        if value is self._order_compare:
            return
        self._order_compare = value
        self.notify_listeners()
