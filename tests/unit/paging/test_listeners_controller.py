"""Unit tests for change listeners and PaginationController."""

import asyncio
from unittest.mock import MagicMock

import pytest

from laakhay.paging import (
    ChangeListener,
    FilterListener,
    GroupedPaginator,
    OrderListener,
    PaginationController,
    PaginationRequest,
    RefreshListener,
    SmartPaginator,
    group_by,
)


def counting_fetch():
    calls = {"n": 0}

    async def fetch(request: PaginationRequest):
        calls["n"] += 1
        return [5, 3, 8, 1]

    fetch.calls = calls  # type: ignore[attr-defined]
    return fetch


class TestChangeListener:
    def test_notifies_in_registration_order(self):
        listener = ChangeListener()
        calls = []
        listener.add_listener(lambda: calls.append("a"))
        listener.add_listener(lambda: calls.append("b"))

        listener.notify_listeners()

        assert calls == ["a", "b"]

    def test_handle_and_remove_listener(self):
        listener = ChangeListener()
        first, second = MagicMock(), MagicMock()
        remove_first = listener.add_listener(first)
        listener.add_listener(second)

        remove_first()
        listener.remove_listener(second)
        listener.notify_listeners()

        first.assert_not_called()
        second.assert_not_called()
        assert listener.has_listeners is False

    def test_callback_errors_are_contained(self):
        listener = ChangeListener()
        good = MagicMock()
        listener.add_listener(MagicMock(side_effect=RuntimeError("boom")))
        listener.add_listener(good)

        listener.notify_listeners()

        good.assert_called_once()

    def test_dispose(self):
        listener = ChangeListener()
        callback = MagicMock()
        listener.add_listener(callback)

        listener.dispose()
        listener.notify_listeners()

        callback.assert_not_called()
        with pytest.raises(RuntimeError):
            listener.add_listener(callback)


class TestValueListeners:
    def test_refresh_listener_notifies_only_when_true(self):
        listener = RefreshListener()
        callback = MagicMock()
        listener.add_listener(callback)

        listener.refreshed = False
        callback.assert_not_called()

        listener.refreshed = True
        assert listener.refreshed is True
        callback.assert_called_once()

    def test_filter_listener_notifies_on_change(self):
        listener = FilterListener()
        callback = MagicMock()
        listener.add_listener(callback)

        def predicate(item):
            return item > 1

        listener.search_term = predicate
        listener.search_term = predicate
        assert callback.call_count == 1
        assert listener.search_term is predicate

        listener.search_term = None
        assert callback.call_count == 2

    def test_order_listener_notifies_on_change(self):
        listener = OrderListener()
        callback = MagicMock()
        listener.add_listener(callback)

        def compare(a, b):
            return a - b

        listener.order_compare = compare
        listener.order_compare = compare
        assert callback.call_count == 1
        assert listener.order_compare is compare


class TestPaginationController:
    @pytest.mark.asyncio
    async def test_filter_and_order_listeners_drive_engine(self):
        filters, orders = FilterListener(), OrderListener()
        engine = SmartPaginator(request=PaginationRequest(page_size=4), fetch=counting_fetch())
        controller = PaginationController(engine, filter_listeners=[filters], order_listeners=[orders])
        await engine.fetch()

        orders.order_compare = lambda a, b: a - b
        assert engine.state.items == (1, 3, 5, 8)

        filters.search_term = lambda n: n > 2
        assert engine.state.items == (3, 5, 8)

        filters.search_term = None
        assert engine.state.items == (1, 3, 5, 8)

        await controller.dispose()

    @pytest.mark.asyncio
    async def test_refresh_listener_schedules_refresh(self):
        refresh = RefreshListener()
        fetch = counting_fetch()
        engine = SmartPaginator(request=PaginationRequest(page_size=4), fetch=fetch)
        controller = PaginationController(engine, refresh_listeners=[refresh])
        await engine.fetch()

        refresh.refreshed = True
        assert controller.pending_refreshes == 1

        await controller.dispose()

        assert fetch.calls["n"] == 2
        assert controller.pending_refreshes == 0
        assert engine.disposed

    @pytest.mark.asyncio
    async def test_dispose_detaches_listeners(self):
        filters = FilterListener()
        engine = SmartPaginator(request=PaginationRequest(page_size=4), fetch=counting_fetch())
        controller = PaginationController(engine, filter_listeners=[filters], is_public=True)
        await engine.fetch()

        await controller.dispose()
        filters.search_term = lambda n: n > 4

        assert engine.state.items == (5, 3, 8, 1)
        assert filters.has_listeners is False

    @pytest.mark.asyncio
    async def test_public_controller_keeps_engine_alive(self):
        engine = SmartPaginator(request=PaginationRequest(page_size=4), fetch=counting_fetch())
        controller = PaginationController(engine, is_public=True)

        await controller.dispose()

        assert not engine.disposed
        await engine.fetch()
        assert len(engine.state.items) == 4
        await engine.dispose()

    @pytest.mark.asyncio
    async def test_of_builds_engine(self):
        refresh = RefreshListener()
        controller = PaginationController.of(
            request=PaginationRequest(page_size=4),
            fetch=counting_fetch(),
            refresh_listeners=[refresh],
        )
        assert isinstance(controller.engine, SmartPaginator)
        assert controller.refresh_listeners == [refresh]

        grouped = PaginationController.of(
            GroupedPaginator,
            request=PaginationRequest(page_size=4),
            fetch=counting_fetch(),
            group_key_generator=group_by(lambda n: n % 2),
        )
        await grouped.engine.fetch()
        assert [g.key for g in grouped.engine.state.groups] == [1, 0]

        await controller.dispose()
        await grouped.dispose()

    @pytest.mark.asyncio
    async def test_refresh_after_dispose_is_ignored(self):
        refresh = RefreshListener()
        engine = SmartPaginator(request=PaginationRequest(page_size=4), fetch=counting_fetch())
        controller = PaginationController(engine, refresh_listeners=[refresh], is_public=True)
        await engine.dispose()

        refresh.refreshed = True
        await asyncio.sleep(0)

        assert controller.pending_refreshes == 0
        await controller.dispose()
