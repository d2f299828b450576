import asyncio
import errno
import io

import pytest

from thumbnailer.errors import IoError
from thumbnailer.processing import file_io
from thumbnailer.processing.file_io import (
    read_source,
    read_source_async,
    write_thumbnail,
    write_thumbnail_async,
)

PAYLOAD = b"\xff\xd8" + b"x" * 4096


def _disk_full():
    return OSError(errno.ENOSPC, "No space left on device")


class _FullDiskFile(io.FileIO):
    """Writes half of the data, then fails."""

    def write(self, data):
        super().write(data[: len(data) // 2])
        raise _disk_full()


class _FullDiskAsyncFile:
    def __init__(self, path):
        self._file = _FullDiskFile(path, "w")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self._file.close()

    async def write(self, data):
        self._file.write(data)


def test_write_and_read_back(workspace):
    src, _ = workspace
    path = src / "thumb.jpg"
    assert write_thumbnail(path, PAYLOAD) == len(PAYLOAD)
    assert read_source(path) == PAYLOAD
    assert asyncio.run(read_source_async(path)) == PAYLOAD


def test_async_write(workspace):
    src, _ = workspace
    path = src / "thumb.jpg"
    assert asyncio.run(write_thumbnail_async(path, PAYLOAD)) == len(PAYLOAD)
    assert path.read_bytes() == PAYLOAD


def test_missing_source_is_an_io_error(workspace):
    src, _ = workspace
    with pytest.raises(IoError) as exc_info:
        read_source(src / "gone.png")
    assert exc_info.value.path == src / "gone.png"

    with pytest.raises(IoError):
        asyncio.run(read_source_async(src / "gone.png"))


def test_failed_write_removes_partial_file(workspace, monkeypatch):
    src, _ = workspace
    path = src / "thumb.jpg"
    monkeypatch.setattr(file_io, "open", lambda p, mode: _FullDiskFile(p, "w"), raising=False)

    with pytest.raises(IoError) as exc_info:
        write_thumbnail(path, PAYLOAD)

    assert "No space left on device" in str(exc_info.value)
    assert not path.exists()


def test_failed_async_write_removes_partial_file(workspace, monkeypatch):
    src, _ = workspace
    path = src / "thumb.jpg"

    async def full_disk_open(p, mode):
        return _FullDiskAsyncFile(p)

    monkeypatch.setattr(file_io.aiofiles, "open", full_disk_open)

    with pytest.raises(IoError):
        asyncio.run(write_thumbnail_async(path, PAYLOAD))

    assert not path.exists()


def test_failed_open_leaves_existing_entry_alone(workspace):
    src, _ = workspace
    # A directory where the thumbnail should go cannot be opened for writing
    blocker = src / "thumb.jpg"
    blocker.mkdir()

    with pytest.raises(IoError):
        write_thumbnail(blocker, PAYLOAD)
    with pytest.raises(IoError):
        asyncio.run(write_thumbnail_async(blocker, PAYLOAD))

    assert blocker.is_dir()
