"""Whole-file reads and writes for both strategies, mapped to IoError.

A write that fails after the destination was opened removes the partial
file, so a truncated thumbnail never stays behind.
"""

from contextlib import suppress
from pathlib import Path

import aiofiles
import aiofiles.os

from ..errors import IoError


def read_source(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise IoError(f"Cannot read source ({e.strerror or e})", path) from e


def write_thumbnail(path: Path, data: bytes) -> int:
    try:
        f = open(path, "wb")
    except OSError as e:
        raise IoError(f"Cannot write thumbnail ({e.strerror or e})", path) from e
    try:
        with f:
            f.write(data)
    except OSError as e:
        with suppress(OSError):
            path.unlink()
        raise IoError(f"Cannot write thumbnail ({e.strerror or e})", path) from e
    return len(data)


async def read_source_async(path: Path) -> bytes:
    """Read a source image without blocking the event loop"""
    try:
        async with aiofiles.open(path, "rb") as f:
            return await f.read()
    except OSError as e:
        raise IoError(f"Cannot read source ({e.strerror or e})", path) from e


async def write_thumbnail_async(path: Path, data: bytes) -> int:
    """Write a thumbnail without blocking the event loop"""
    try:
        f = await aiofiles.open(path, "wb")
    except OSError as e:
        raise IoError(f"Cannot write thumbnail ({e.strerror or e})", path) from e
    try:
        async with f:
            await f.write(data)
    except OSError as e:
        with suppress(OSError):
            await aiofiles.os.remove(path)
        raise IoError(f"Cannot write thumbnail ({e.strerror or e})", path) from e
    return len(data)
