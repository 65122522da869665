"""In-process publish/subscribe with a bounded queue per subscriber."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Generic, TypeVar

from streamclip.utils.progress import log_warning

T = TypeVar("T")


class Subscription(Generic[T]):
    """One listener's view of a bus.

    Messages are buffered up to ``maxsize``; when the buffer is full new
    messages are dropped for this subscriber only.
    """

    def __init__(self, bus: "EventBus[T]", maxsize: int, name: str = "") -> None:
        self._bus = bus
        self._queue: asyncio.Queue[T] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.name = name
        self.dropped = 0

    @property
    def is_open(self) -> bool:
        return not self._closed

    def deliver(self, item: T) -> bool:
        """Queue an item without blocking. Returns False if it was dropped."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            self.dropped += 1
            if self.dropped == 1 or self.dropped % 100 == 0:
                log_warning(
                    f"Subscriber {self.name or id(self)} is falling behind "
                    f"({self.dropped} dropped)"
                )
            return False
        return True

    async def get(self) -> T:
        return await self._queue.get()

    def get_nowait(self) -> T:
        return self._queue.get_nowait()

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        self._closed = True
        self._bus.unsubscribe(self)

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        while not self._closed or not self._queue.empty():
            yield await self._queue.get()


class EventBus(Generic[T]):
    """Fan-out channel. Publishing never blocks and never raises."""

    def __init__(self, default_maxsize: int = 256) -> None:
        self.default_maxsize = default_maxsize
        self._subscribers: list[Subscription[T]] = []

    def subscribe(self, maxsize: int | None = None, *, name: str = "") -> Subscription[T]:
        sub: Subscription[T] = Subscription(self, maxsize or self.default_maxsize, name)
        self._subscribers.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription[T]) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, item: T) -> int:
        """Deliver to every open subscriber. Returns the number reached."""
        delivered = 0
        for sub in list(self._subscribers):
            if not sub.is_open:
                continue
            try:
                if sub.deliver(item):
                    delivered += 1
            except Exception as e:
                log_warning(f"Delivery to subscriber {sub.name or id(sub)} failed: {e}")
        return delivered
