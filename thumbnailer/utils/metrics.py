"""Run metrics tracking shared by reader, workers and writer"""

import threading
import time
from typing import List, Optional

from ..models import ItemFailure, RunSummary, WorkItem
from ..errors import ThumbnailerError
from .logger import logger


class MetricsTracker:
    def __init__(self):
        self._lock = threading.Lock()
        self.metrics = {
            'processing_start_time': None,
            'processing_end_time': None,
            'successful_items': 0,
            'failed_items': 0,
            'bytes_read': 0,
            'bytes_written': 0,
        }
        self.failures: List[ItemFailure] = []

    def start_processing(self):
        """Mark start of processing"""
        self.metrics['processing_start_time'] = time.perf_counter()

    def stop_processing(self):
        """Mark end of processing"""
        self.metrics['processing_end_time'] = time.perf_counter()

    def record_read(self, size: int):
        with self._lock:
            self.metrics['bytes_read'] += size

    def record_written(self, size: int):
        """Record one thumbnail written to disk"""
        with self._lock:
            self.metrics['bytes_written'] += size
            self.metrics['successful_items'] += 1

    def record_failure(self, item: WorkItem, error: ThumbnailerError):
        """Record a per-file failure"""
        with self._lock:
            self.metrics['failed_items'] += 1
            self.failures.append(ItemFailure(item=item, error=error))

    @property
    def elapsed(self) -> float:
        start = self.metrics['processing_start_time']
        if start is None:
            return 0.0
        end = self.metrics['processing_end_time'] or time.perf_counter()
        return end - start

    def summary(
        self,
        peak_input_buffered: Optional[int] = None,
        peak_output_buffered: Optional[int] = None,
    ) -> RunSummary:
        """Snapshot the counters as a RunSummary"""
        with self._lock:
            return RunSummary(
                processed=self.metrics['successful_items'],
                failures=list(self.failures),
                bytes_read=self.metrics['bytes_read'],
                bytes_written=self.metrics['bytes_written'],
                elapsed=self.elapsed,
                peak_input_buffered=peak_input_buffered,
                peak_output_buffered=peak_output_buffered,
            )

    @staticmethod
    def print_summary(summary: RunSummary):
        """Print processing summary"""
        rate = summary.processed / summary.elapsed if summary.elapsed > 0 else 0.0

        logger.info("\n" + "=" * 50)
        logger.info(
            f"✅ Wrote {summary.processed} thumbnails in {summary.elapsed:.1f} seconds "
            f"({rate:.1f} files/s)"
        )
        logger.info(
            f"📊 Read {summary.bytes_read / (1024 * 1024):.1f} MB, "
            f"wrote {summary.bytes_written / (1024 * 1024):.1f} MB"
        )
        if summary.peak_input_buffered is not None:
            logger.info(
                f"📦 Peak buffered: {summary.peak_input_buffered} raw, "
                f"{summary.peak_output_buffered} encoded"
            )
        if summary.failures:
            logger.info(f"❌ {len(summary.failures)} files failed:")
            for failure in summary.failures:
                logger.info(f"   {failure.item.source}: {failure.error}")

        logger.info("=" * 50)
