"""Fan the work list out over a thread pool, one read-resize-write task per file"""

import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional, Sequence

from tqdm import tqdm

from ..errors import ThumbnailerError
from ..models import ResizeConfig, RunSummary, WorkItem
from ..utils.logger import logger
from ..utils.metrics import MetricsTracker
from .file_io import read_source, write_thumbnail
from .resizer import ResizeWorker


class DataParallelStrategy:
    """Every task runs the whole read, resize and write sequence on its own thread.

    I/O and CPU work overlap across tasks, not within one. The first error
    aborts the batch: tasks that have not started are cancelled or skip
    their file, running ones finish. With ``keep_going`` errors are collected
    instead.
    """

    name = "data-parallel"

    def __init__(
        self,
        resize_config: ResizeConfig,
        workers: Optional[int] = None,
        keep_going: bool = False,
        progress: bool = True,
    ):
        self.resizer = ResizeWorker(resize_config)
        self.workers = workers or os.cpu_count() or 1
        self.keep_going = keep_going
        self.progress = progress

    def process_one(
        self, item: WorkItem, metrics: MetricsTracker, stop: Optional[threading.Event] = None
    ) -> int:
        """Thumbnail one file synchronously; returns the bytes written.

        Once ``stop`` is set the task returns 0 without touching the file.
        A failure sets ``stop`` unless the strategy keeps going.
        """
        if stop is not None and stop.is_set():
            return 0
        try:
            return self._thumbnail(item, metrics)
        except ThumbnailerError:
            if stop is not None and not self.keep_going:
                stop.set()
            raise

    def _thumbnail(self, item: WorkItem, metrics: MetricsTracker) -> int:
        data = read_source(item.source)
        metrics.record_read(len(data))
        try:
            encoded = self.resizer.resize(data)
        except ThumbnailerError as e:
            e.path = item.source
            raise
        written = write_thumbnail(item.destination, encoded)
        metrics.record_written(written)
        return written

    def run(self, items: Sequence[WorkItem]) -> RunSummary:
        metrics = MetricsTracker()
        stop = threading.Event()
        metrics.start_processing()
        logger.info(f"🚀 Thumbnailing {len(items)} files on {self.workers} threads")

        try:
            with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="thumbnail") as executor:
                futures = {executor.submit(self.process_one, item, metrics, stop): item for item in items}
                try:
                    self._collect(futures, metrics)
                except BaseException:
                    stop.set()
                    cancelled = sum(future.cancel() for future in futures)
                    logger.debug(f"Cancelled {cancelled} pending files")
                    raise
        finally:
            metrics.stop_processing()

        return metrics.summary()

    def _collect(self, futures, metrics: MetricsTracker):
        with tqdm(total=len(futures), desc="Thumbnailing", unit="file", disable=not self.progress) as bar:
            for future in as_completed(futures):
                item = futures[future]
                try:
                    future.result()
                except ThumbnailerError as e:
                    if not self.keep_going:
                        raise
                    logger.error(f"❌ {e}")
                    metrics.record_failure(item, e)
                bar.update(1)
