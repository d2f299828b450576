#!/usr/bin/env python3
"""Bulk Thumbnailer - Main Entry Point"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .config import Config
from .errors import ConfigError, IoError, ThumbnailerError
from .models import FilterKind, RunSummary
from .processing.data_parallel import DataParallelStrategy
from .processing.enumerator import PathEnumerator
from .processing.pipelined import PipelinedStrategy
from .utils.logger import logger
from .utils.metrics import MetricsTracker

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    # -h is --height, so help is long-form only
    parser = argparse.ArgumentParser(
        prog="thumbnailer",
        description="Create image thumbnails in bulk, maximizing creation throughput",
        add_help=False,
    )
    parser.add_argument("src", help="Path to the source folder")
    parser.add_argument("dst", help="Path to the destination folder")
    parser.add_argument("--help", action="help", help="Show this help message and exit")
    parser.add_argument("--width", "-w", type=int, help="Width of the generated thumbnails (default: 120)")
    parser.add_argument("--height", "-h", type=int, help="Height of the generated thumbnails (default: 150)")
    parser.add_argument(
        "--filter", "-f",
        help="Resampling filter: " + ", ".join(kind.value for kind in FilterKind)
        + ". 'nearest' (default) is the fastest",
    )
    parser.add_argument(
        "--asynchronous", "-a", action="store_true", default=None,
        help="Use the pipelined strategy (async I/O, fixed CPU worker pool)",
    )
    parser.add_argument("--limit", "-l", type=int, help="Queue capacity in pipelined mode (default: 10)")
    parser.add_argument(
        "--extension", "-e",
        help="Comma-separated source extensions (default: tif); empty string matches every file",
    )
    parser.add_argument("--workers", type=int, help="Worker threads (default: CPU count)")
    parser.add_argument(
        "--keep-going", "-k", action="store_true", default=None,
        help="Report failed files at the end instead of stopping at the first one",
    )
    parser.add_argument("--config", "-c", help="JSON config file")
    parser.add_argument(
        "--no-progress", dest="progress", action="store_false", default=None,
        help="Disable the progress bar",
    )
    parser.add_argument("--log-file", help="Also append log messages to this file")
    parser.add_argument("--verbose", "-v", action="store_true", default=None, help="Debug logging")
    return parser


def run(config: Config, src: str, dst: str) -> int:
    """Build the work list, run the configured strategy and report. Returns the exit code."""
    destination = Path(dst)
    try:
        destination.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoError(f"Cannot create destination ({e.strerror or e})", destination) from e

    enumerator = PathEnumerator(src, destination, config.extensions)
    items, traversal_errors = enumerator.build_work_list(fail_fast=not config.keep_going)

    if config.asynchronous:
        strategy = PipelinedStrategy(
            config.resize,
            limit=config.limit,
            workers=config.workers,
            keep_going=config.keep_going,
            progress=config.progress,
        )
    else:
        strategy = DataParallelStrategy(
            config.resize,
            workers=config.workers,
            keep_going=config.keep_going,
            progress=config.progress,
        )
    logger.debug(
        f"Using {strategy.name} strategy: {config.resize.width}x{config.resize.height}, "
        f"filter {config.resize.filter_kind.value}"
    )

    summary: RunSummary = strategy.run(items)
    MetricsTracker.print_summary(summary)

    if traversal_errors:
        logger.error(f"❌ {len(traversal_errors)} directory entries could not be walked")
    if summary.failures or traversal_errors:
        return EXIT_FAILURE
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    overrides = {
        key: value for key, value in vars(args).items()
        if key not in ("src", "dst", "config")
    }

    logger.configure()
    try:
        config = Config(args.config, overrides)
        logger.configure(verbose=config.verbose, log_file=config.log_file)
    except ConfigError as e:
        logger.error(f"❌ {e}")
        return EXIT_CONFIG
    except OSError as e:
        logger.error(f"❌ Cannot open log file: {e}")
        return EXIT_CONFIG

    try:
        return run(config, args.src, args.dst)
    except ThumbnailerError as e:
        logger.error(f"❌ Processing failed: {e}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("\n🛑 Processing interrupted by user")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
