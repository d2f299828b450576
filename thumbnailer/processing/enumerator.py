"""Directory walk that mirrors the source tree and builds the work list"""

import os
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Set, Tuple, Union

from ..errors import IoError
from ..models import TraversalError, WorkItem
from ..utils.logger import logger

OUTPUT_SUFFIX = ".jpg"

WalkResult = Union[WorkItem, TraversalError]


class PathEnumerator:
    """Walks a source tree and pairs every matching file with its thumbnail path.

    Entries are visited in sorted name order and directory symlinks are not
    followed. A destination directory is created only once the source
    directory is known to hold at least one matching file, so the destination
    tree mirrors exactly the part of the source tree that produces output.
    """

    def __init__(
        self,
        source_root: Union[str, Path],
        destination_root: Union[str, Path],
        extensions: Optional[Sequence[str]] = None,
    ):
        self.source_root = Path(source_root)
        self.destination_root = Path(destination_root)
        self.extensions = {_dotted(ext) for ext in extensions} if extensions else None
        self._seen: Set[Path] = set()

    def matches(self, name: str) -> bool:
        if self.extensions is None:
            return True
        return Path(name).suffix.lower() in self.extensions

    def iter_work_items(self) -> Iterator[WalkResult]:
        """Yield a WorkItem per matching file, or a TraversalError per failed entry"""
        self._seen.clear()
        if not self.source_root.is_dir():
            yield TraversalError(
                self.source_root, IoError("Source directory not found", self.source_root)
            )
            return
        yield from self._walk(self.source_root, self.destination_root)

    def build_work_list(self, fail_fast: bool = True) -> Tuple[List[WorkItem], List[TraversalError]]:
        """Collect the whole walk.

        With ``fail_fast`` the first traversal error is raised and the walk
        stops there; otherwise errors are returned next to the items.
        """
        items: List[WorkItem] = []
        errors: List[TraversalError] = []
        for result in self.iter_work_items():
            if isinstance(result, TraversalError):
                if fail_fast:
                    raise result.error
                logger.warning(f"⚠️ Skipping {result.path}: {result.error}")
                errors.append(result)
            else:
                items.append(result)

        logger.info(f"🔍 Found {len(items)} files to thumbnail under {self.source_root}")
        return items, errors

    def _walk(self, source_dir: Path, destination_dir: Path) -> Iterator[WalkResult]:
        try:
            with os.scandir(source_dir) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as e:
            yield TraversalError(source_dir, _io_error("Cannot read directory", source_dir, e))
            return

        files = []
        subdirs = []
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirs.append(entry)
                elif entry.is_file() and self.matches(entry.name):
                    files.append(entry)
            except OSError as e:
                yield TraversalError(Path(entry.path), _io_error("Cannot stat entry", entry.path, e))

        destination_ready = False
        for entry in files:
            destination = destination_dir / (Path(entry.name).stem + OUTPUT_SUFFIX)
            if destination in self._seen:
                logger.warning(f"⚠️ Skipping {entry.path}: {destination} is already produced by another file")
                continue

            if not destination_ready:
                try:
                    destination_dir.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    yield TraversalError(
                        destination_dir, _io_error("Cannot create directory", destination_dir, e)
                    )
                    break
                destination_ready = True

            self._seen.add(destination)
            yield WorkItem(source=Path(entry.path), destination=destination)

        for entry in subdirs:
            subdir = Path(entry.path)
            # Never walk into our own output when it lives inside the source
            if _same_path(subdir, self.destination_root):
                continue
            yield from self._walk(subdir, destination_dir / entry.name)


def _dotted(ext: str) -> str:
    ext = ext.strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


def _same_path(a: Path, b: Path) -> bool:
    try:
        return a.resolve() == b.resolve()
    except OSError:
        return False


def _io_error(message: str, path: Union[str, Path], cause: OSError) -> IoError:
    error = IoError(f"{message} ({cause.strerror or cause})", path)
    error.__cause__ = cause
    return error
