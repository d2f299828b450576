"""Reader -> CPU worker pool -> writer pipeline over two bounded queues.

The reader and the writer are asyncio tasks doing file I/O through aiofiles.
The workers are dedicated threads of a ThreadPoolExecutor, each bridged into
the event loop with ``run_in_executor``. The two BoundedQueues are the only
shared state, and every payload is owned by exactly one stage at a time.

Shutdown:

* the reader closes the input queue once, after its last put;
* every worker releases the CloseBarrier once on exit, and the last release
  closes the output queue;
* the writer drains the output queue until it is closed.

On the first fatal error the input queue is aborted. Buffered raw files are
dropped, the reader stops, and idle workers exit. Files a worker already
picked up are still encoded and written. A writer failure aborts the output
queue as well.
"""

import asyncio
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from tqdm import tqdm

from ..errors import ThumbnailerError
from ..models import ResizeConfig, RunSummary, WorkItem
from ..utils.logger import logger
from ..utils.metrics import MetricsTracker
from .bounded_queue import BoundedQueue, CloseBarrier
from .file_io import read_source_async, write_thumbnail_async
from .resizer import ResizeWorker

RawEntry = Tuple[bytes, WorkItem]
EncodedEntry = Tuple[bytes, WorkItem]


class _RunState:
    """Failure bookkeeping for one run, shared by all stages"""

    def __init__(self, inbox: BoundedQueue, outbox: BoundedQueue):
        self.inbox = inbox
        self.outbox = outbox
        self.errors: List[BaseException] = []
        self._stop = threading.Event()
        self._lock = threading.Lock()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def fail(self, error: BaseException, abort_output: bool = False):
        """Record a fatal error and stop feeding the pipeline"""
        with self._lock:
            self.errors.append(error)
            first = not self._stop.is_set()
            self._stop.set()
        if first:
            logger.debug(f"Stopping pipeline after: {error}")
        dropped = self.inbox.abort()
        if dropped:
            logger.debug(f"Discarded {dropped} buffered files")
        if abort_output:
            self.outbox.abort()


class PipelinedStrategy:
    name = "pipelined"

    def __init__(
        self,
        resize_config: ResizeConfig,
        limit: int = 10,
        workers: Optional[int] = None,
        keep_going: bool = False,
        progress: bool = True,
    ):
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        self.resizer = ResizeWorker(resize_config)
        self.limit = limit
        self.workers = workers or os.cpu_count() or 1
        self.keep_going = keep_going
        self.progress = progress

    def run(self, items: Sequence[WorkItem]) -> RunSummary:
        return asyncio.run(self.run_async(items))

    async def run_async(self, items: Sequence[WorkItem]) -> RunSummary:
        inbox: BoundedQueue[RawEntry] = BoundedQueue(self.limit, "input queue")
        outbox: BoundedQueue[EncodedEntry] = BoundedQueue(self.limit, "output queue")
        barrier = CloseBarrier(outbox, self.workers)
        state = _RunState(inbox, outbox)
        metrics = MetricsTracker()

        logger.info(
            f"🚀 Thumbnailing {len(items)} files through {self.workers} workers "
            f"(queue limit {self.limit})"
        )
        metrics.start_processing()
        loop = asyncio.get_running_loop()

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="resize") as executor, \
                tqdm(total=len(items), desc="Thumbnailing", unit="file", disable=not self.progress) as bar:
            stages = [
                asyncio.ensure_future(self._read(items, inbox, state, metrics, bar)),
                asyncio.ensure_future(self._write(outbox, state, metrics, bar)),
            ]
            stages.extend(
                loop.run_in_executor(executor, self._work, inbox, outbox, barrier, state, metrics, bar)
                for _ in range(self.workers)
            )
            finished = False
            try:
                await asyncio.gather(*stages)
                finished = True
            finally:
                if not finished:
                    # Cancelled from outside: unblock the worker threads so the pool can join
                    inbox.abort()
                    outbox.abort()
                metrics.stop_processing()

        if state.errors:
            raise state.errors[0]

        return metrics.summary(
            peak_input_buffered=inbox.high_water,
            peak_output_buffered=outbox.high_water,
        )

    async def _read(self, items: Sequence[WorkItem], inbox: BoundedQueue, state: _RunState,
                    metrics: MetricsTracker, bar: tqdm):
        """Reader stage: load each source file and hand it to the worker pool"""
        try:
            for item in items:
                if state.stopped:
                    break
                try:
                    data = await read_source_async(item.source)
                except ThumbnailerError as e:
                    if not self.keep_going:
                        state.fail(e)
                        break
                    self._record_failure(item, e, metrics, bar)
                    continue
                metrics.record_read(len(data))
                if not await inbox.put_async((data, item)):
                    break
        except Exception as e:
            state.fail(e)
        finally:
            inbox.close()

    def _work(self, inbox: BoundedQueue, outbox: BoundedQueue, barrier: CloseBarrier,
              state: _RunState, metrics: MetricsTracker, bar: tqdm):
        """Worker stage, runs on a pool thread until the input queue ends"""
        try:
            for data, item in inbox:
                try:
                    encoded = self.resizer.resize(data)
                except ThumbnailerError as e:
                    e.path = item.source
                    if not self.keep_going:
                        state.fail(e)
                        break
                    self._record_failure(item, e, metrics, bar)
                    continue
                # Drop the raw payload before possibly blocking on the output queue
                del data
                if not outbox.put((encoded, item)):
                    break
        except Exception as e:
            state.fail(e)
        finally:
            barrier.release()

    async def _write(self, outbox: BoundedQueue, state: _RunState, metrics: MetricsTracker, bar: tqdm):
        """Writer stage: store every encoded thumbnail until the output queue is closed"""
        try:
            async for encoded, item in outbox:
                try:
                    written = await write_thumbnail_async(item.destination, encoded)
                except ThumbnailerError as e:
                    if not self.keep_going:
                        state.fail(e, abort_output=True)
                        break
                    self._record_failure(item, e, metrics, bar)
                    continue
                metrics.record_written(written)
                bar.update(1)
        except Exception as e:
            state.fail(e, abort_output=True)

    @staticmethod
    def _record_failure(item: WorkItem, error: ThumbnailerError, metrics: MetricsTracker, bar: tqdm):
        logger.error(f"❌ {error}")
        metrics.record_failure(item, error)
        bar.update(1)
