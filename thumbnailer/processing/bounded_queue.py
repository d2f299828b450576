"""Bounded hand-off queue shared by asyncio tasks and worker threads"""

import asyncio
import threading
from collections import deque
from typing import AsyncIterator, Deque, Generic, Iterator, List, TypeVar

from ..errors import QueueProtocolError

T = TypeVar("T")


class QueueClosed(Exception):
    """Raised by get()/get_async() once the queue is closed and drained, or aborted"""


class BoundedQueue(Generic[T]):
    """FIFO of at most ``capacity`` items with backpressure on both sides.

    Threads use the blocking ``put``/``get`` (or plain iteration) and asyncio
    tasks use ``put_async``/``get_async`` (or ``async for``). An async caller
    never blocks its event loop: it parks on a loop future that the other side
    resolves through ``call_soon_threadsafe``.

    ``close`` is the producer saying it is done: consumers still drain what is
    buffered. ``abort`` drops the buffered items and releases every waiter;
    after it, puts return False and gets end at once. Putting into a closed
    queue, or closing it twice, raises QueueProtocolError.
    """

    def __init__(self, capacity: int, name: str = "queue"):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.name = name
        self.high_water = 0

        self._items: Deque[T] = deque()
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)
        self._closed = False
        self._aborted = False
        self._async_getters: List[asyncio.Future] = []
        self._async_putters: List[asyncio.Future] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def aborted(self) -> bool:
        return self._aborted

    # Thread side

    def put(self, item: T) -> bool:
        """Block until there is room, then enqueue. False if the queue was aborted."""
        with self._lock:
            while True:
                if self._check_put_locked():
                    break
                if self._aborted:
                    return False
                self._not_full.wait()
            self._append_locked(item)
            return True

    def get(self) -> T:
        """Block until an item is available. Raises QueueClosed at end of stream."""
        with self._lock:
            while True:
                if self._aborted:
                    raise QueueClosed(self.name)
                if self._items:
                    return self._pop_locked()
                if self._closed:
                    raise QueueClosed(self.name)
                self._not_empty.wait()

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.get()
            except QueueClosed:
                return

    # Asyncio side

    async def put_async(self, item: T) -> bool:
        """Suspend until there is room, then enqueue. False if the queue was aborted."""
        loop = asyncio.get_running_loop()
        while True:
            with self._lock:
                if self._check_put_locked():
                    self._append_locked(item)
                    return True
                if self._aborted:
                    return False
                waiter = loop.create_future()
                self._async_putters.append(waiter)
            await self._park(waiter, self._async_putters)

    async def get_async(self) -> T:
        """Suspend until an item is available. Raises QueueClosed at end of stream."""
        loop = asyncio.get_running_loop()
        while True:
            with self._lock:
                if self._aborted:
                    raise QueueClosed(self.name)
                if self._items:
                    return self._pop_locked()
                if self._closed:
                    raise QueueClosed(self.name)
                waiter = loop.create_future()
                self._async_getters.append(waiter)
            await self._park(waiter, self._async_getters)

    async def _iter_async(self) -> AsyncIterator[T]:
        while True:
            try:
                item = await self.get_async()
            except QueueClosed:
                return
            yield item

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iter_async()

    # Lifecycle

    def close(self):
        """Mark the end of production; buffered items stay available to consumers"""
        with self._lock:
            if self._aborted:
                return
            if self._closed:
                raise QueueProtocolError(f"{self.name} closed twice")
            self._closed = True
            self._wake_all_locked()

    def abort(self) -> int:
        """Drop buffered items, end the stream and release all waiters. Returns the drop count."""
        with self._lock:
            dropped = len(self._items)
            self._items.clear()
            self._aborted = True
            self._closed = True
            self._wake_all_locked()
            return dropped

    # Internals, all called with self._lock held

    def _check_put_locked(self) -> bool:
        """True when an item can be appended right now"""
        if self._aborted:
            return False
        if self._closed:
            raise QueueProtocolError(f"put on closed {self.name}")
        return len(self._items) < self.capacity

    def _append_locked(self, item: T):
        self._items.append(item)
        self.high_water = max(self.high_water, len(self._items))
        self._not_empty.notify()
        _wake(self._async_getters)

    def _pop_locked(self) -> T:
        item = self._items.popleft()
        self._not_full.notify()
        _wake(self._async_putters)
        return item

    def _wake_all_locked(self):
        self._not_empty.notify_all()
        self._not_full.notify_all()
        _wake(self._async_getters)
        _wake(self._async_putters)

    async def _park(self, waiter: asyncio.Future, waiters: List[asyncio.Future]):
        try:
            await waiter
        finally:
            # Still listed only if we were cancelled before being woken
            with self._lock:
                if waiter in waiters:
                    waiters.remove(waiter)


class CloseBarrier:
    """Closes a queue once every one of its ``parties`` producers has released.

    Each producer calls ``release`` exactly once when it exits, whatever the
    reason. Only the release that brings the count to zero closes the queue.
    """

    def __init__(self, queue: BoundedQueue, parties: int):
        if parties <= 0:
            raise ValueError(f"parties must be positive, got {parties}")
        self._queue = queue
        self._remaining = parties
        self._lock = threading.Lock()

    @property
    def remaining(self) -> int:
        with self._lock:
            return self._remaining

    def release(self) -> bool:
        """Drop one producer; returns True for the release that closed the queue"""
        with self._lock:
            if self._remaining == 0:
                raise QueueProtocolError(f"{self._queue.name} barrier released too many times")
            self._remaining -= 1
            last = self._remaining == 0
        if last:
            self._queue.close()
        return last


def _wake(waiters: List[asyncio.Future]):
    for waiter in waiters:
        waiter.get_loop().call_soon_threadsafe(_resolve, waiter)
    waiters.clear()


def _resolve(waiter: asyncio.Future):
    if not waiter.done():
        waiter.set_result(None)
