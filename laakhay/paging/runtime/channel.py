"""Broadcast channel for engine state snapshots.

Architecture:
    Each engine owns one StateChannel. ``publish`` delivers a snapshot
    synchronously to every current subscriber in subscription order, so all
    subscribers observe the same total order of states. Async consumers
    use ``listen()``, which buffers snapshots in a per-listener queue.

Design Decisions:
    - Subscription ids (uuid hex) as unsubscribe handles
    - Subscriber exceptions are logged and never interrupt delivery
    - The latest value is retained so late subscribers can read ``value``
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")

StateCallback = Callable[[S], None]

# Marks the end of a listen() iteration
_CLOSED = object()


class StateChannel(Generic[S]):
    """Synchronous broadcast of immutable values."""

    def __init__(self, initial: S) -> None:
        self._value = initial
        self._subs: dict[str, StateCallback[S]] = {}
        self._queues: list[asyncio.Queue[object]] = []
        self._closed = False

    @property
    def value(self) -> S:
        """Most recently published value."""
        return self._value

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subs) + len(self._queues)

    def subscribe(self, callback: StateCallback[S], *, replay: bool = False) -> str:
        """Register a callback for future values.

        Args:
            callback: Called with each published value
            replay: Deliver the current value immediately

        Returns:
            Subscription id for ``unsubscribe``
        """
        sub_id = uuid.uuid4().hex
        self._subs[sub_id] = callback
        if replay:
            self._deliver(callback, self._value)
        return sub_id

    def unsubscribe(self, subscription_id: str) -> None:
        self._subs.pop(subscription_id, None)

    def publish(self, value: S) -> None:
        """Store ``value`` and deliver it to every subscriber."""
        if self._closed:
            logger.debug("Dropping value published on closed channel")
            return
        self._value = value
        for callback in list(self._subs.values()):
            self._deliver(callback, value)
        for queue in self._queues:
            queue.put_nowait(value)

    async def listen(self, *, replay: bool = True) -> AsyncIterator[S]:
        """Iterate over published values until the channel closes.

        Args:
            replay: Yield the current value first
        """
        queue: asyncio.Queue[object] = asyncio.Queue()
        if replay:
            queue.put_nowait(self._value)
        if self._closed:
            queue.put_nowait(_CLOSED)
        else:
            self._queues.append(queue)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item  # type: ignore[misc]
        finally:
            if queue in self._queues:
                self._queues.remove(queue)

    def close(self) -> None:
        """Stop delivery and end every ``listen()`` iteration."""
        if self._closed:
            return
        self._closed = True
        self._subs.clear()
        for queue in self._queues:
            queue.put_nowait(_CLOSED)

    def _deliver(self, callback: StateCallback[S], value: S) -> None:
        try:
            callback(value)
        except Exception as e:
            logger.error(f"Error in state subscriber: {e}", exc_info=True)
