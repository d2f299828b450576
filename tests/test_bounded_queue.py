"""Unit tests for the bounded hand-off queue.

Tests cover:
- FIFO order, capacity and high-water tracking
- close/abort semantics and protocol errors
- Blocking and suspension on both the thread and asyncio sides
- The close barrier used by the worker pool
"""

import asyncio
import threading
import time

import pytest

from thumbnailer.errors import QueueProtocolError
from thumbnailer.processing.bounded_queue import BoundedQueue, CloseBarrier, QueueClosed


def _start(target, *args):
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


def test_fifo_order_and_high_water():
    queue = BoundedQueue(3)
    for i in range(3):
        assert queue.put(i)
    assert len(queue) == 3
    assert queue.high_water == 3

    assert [queue.get() for _ in range(3)] == [0, 1, 2]
    assert len(queue) == 0
    assert queue.high_water == 3


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        BoundedQueue(0)


def test_close_lets_consumers_drain():
    queue = BoundedQueue(4)
    queue.put("a")
    queue.put("b")
    queue.close()

    assert list(queue) == ["a", "b"]
    with pytest.raises(QueueClosed):
        queue.get()


def test_put_after_close_is_a_protocol_error():
    queue = BoundedQueue(2)
    queue.close()
    with pytest.raises(QueueProtocolError):
        queue.put("late")


def test_double_close_is_a_protocol_error():
    queue = BoundedQueue(2)
    queue.close()
    with pytest.raises(QueueProtocolError):
        queue.close()


def test_abort_drops_items_and_refuses_puts():
    queue = BoundedQueue(4)
    queue.put(1)
    queue.put(2)

    assert queue.abort() == 2
    assert queue.aborted
    assert queue.put(3) is False
    with pytest.raises(QueueClosed):
        queue.get()
    # Producers closing after an abort is expected and harmless
    queue.close()
    assert queue.abort() == 0


def test_put_blocks_while_full():
    queue = BoundedQueue(1)
    queue.put("first")
    done = threading.Event()

    def producer():
        queue.put("second")
        done.set()

    thread = _start(producer)
    assert not done.wait(0.1)
    assert queue.get() == "first"
    assert done.wait(2)
    assert queue.get() == "second"
    thread.join(2)
    assert queue.high_water == 1


def test_blocked_get_is_released_by_close():
    queue = BoundedQueue(1)
    received = []
    thread = _start(lambda: received.extend(queue))

    time.sleep(0.05)
    queue.put("only")
    queue.close()
    thread.join(2)

    assert not thread.is_alive()
    assert received == ["only"]


def test_blocked_put_is_released_by_abort():
    queue = BoundedQueue(1)
    queue.put("first")
    results = []
    thread = _start(lambda: results.append(queue.put("second")))

    time.sleep(0.05)
    queue.abort()
    thread.join(2)
    assert results == [False]


def test_async_put_suspends_without_blocking_the_loop():
    async def scenario():
        queue = BoundedQueue(1)
        assert await queue.put_async("first")

        pending = asyncio.ensure_future(queue.put_async("second"))
        ticks = 0
        for _ in range(5):
            await asyncio.sleep(0.01)
            ticks += 1
        assert not pending.done()
        assert ticks == 5

        assert queue.get() == "first"
        assert await asyncio.wait_for(pending, 2) is True
        return queue.get()

    assert asyncio.run(scenario()) == "second"


def test_async_get_is_woken_by_a_thread_put():
    async def scenario():
        queue = BoundedQueue(2)
        loop = asyncio.get_running_loop()
        getter = asyncio.ensure_future(queue.get_async())
        await asyncio.sleep(0.01)
        assert not getter.done()

        await loop.run_in_executor(None, queue.put, "payload")
        return await asyncio.wait_for(getter, 2)

    assert asyncio.run(scenario()) == "payload"


def test_async_iteration_ends_when_threads_close():
    async def scenario():
        queue = BoundedQueue(2)

        def producer():
            for i in range(10):
                queue.put(i)
            queue.close()

        thread = _start(producer)
        received = [item async for item in queue]
        thread.join(2)
        return received, queue.high_water

    received, high_water = asyncio.run(scenario())
    assert received == list(range(10))
    assert high_water <= 2


def test_async_put_returns_false_after_abort():
    async def scenario():
        queue = BoundedQueue(1)
        await queue.put_async("first")
        pending = asyncio.ensure_future(queue.put_async("second"))
        await asyncio.sleep(0.01)

        queue.abort()
        return await asyncio.wait_for(pending, 2)

    assert asyncio.run(scenario()) is False


def test_cancelled_async_put_leaves_queue_usable():
    async def scenario():
        queue = BoundedQueue(1)
        await queue.put_async("first")
        pending = asyncio.ensure_future(queue.put_async("never"))
        await asyncio.sleep(0.01)
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending

        assert queue.get() == "first"
        assert await queue.put_async("second")
        return queue.get()

    assert asyncio.run(scenario()) == "second"


def test_barrier_closes_only_on_last_release():
    queue = BoundedQueue(2)
    barrier = CloseBarrier(queue, 3)

    assert barrier.release() is False
    assert barrier.release() is False
    assert not queue.closed
    assert barrier.remaining == 1

    assert barrier.release() is True
    assert queue.closed


def test_barrier_rejects_extra_release():
    barrier = CloseBarrier(BoundedQueue(1), 1)
    barrier.release()
    with pytest.raises(QueueProtocolError):
        barrier.release()


def test_barrier_closes_exactly_once_under_contention():
    queue = BoundedQueue(1)
    barrier = CloseBarrier(queue, 16)
    start = threading.Event()
    closers = []

    def producer():
        start.wait()
        if barrier.release():
            closers.append(threading.current_thread().name)

    threads = [_start(producer) for _ in range(16)]
    start.set()
    for thread in threads:
        thread.join(2)

    assert len(closers) == 1
    assert queue.closed
    assert barrier.remaining == 0
