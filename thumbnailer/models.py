"""Data models and types for thumbnail runs"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .errors import ConfigError, ThumbnailerError


class FilterKind(Enum):
    """Resampling kernel, from fastest (nearest) to highest quality (lanczos3)"""

    NEAREST = "nearest"
    TRIANGLE = "triangle"
    GAUSSIAN = "gaussian"
    CATMULL_ROM = "catmull-rom"
    LANCZOS3 = "lanczos3"

    @classmethod
    def parse(cls, name: str) -> "FilterKind":
        """Parse a CLI filter name, case-insensitively"""
        try:
            return cls(name.strip().lower())
        except (ValueError, AttributeError):
            allowed = ", ".join(f"'{kind.value}'" for kind in cls)
            raise ConfigError(
                f"Cannot parse filter type {name!r}. The only authorized values are {allowed}"
            ) from None


@dataclass(frozen=True)
class ResizeConfig:
    """Target geometry and kernel, shared read-only by every worker"""
    width: int = 120
    height: int = 150
    filter_kind: FilterKind = FilterKind.NEAREST

    def __post_init__(self):
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        if not isinstance(self.filter_kind, FilterKind):
            raise ConfigError(f"filter_kind must be a FilterKind, got {self.filter_kind!r}")


@dataclass(frozen=True)
class WorkItem:
    """One file to thumbnail"""
    source: Path
    destination: Path


@dataclass(frozen=True)
class TraversalError:
    """A directory walk failure reported in place of a work item"""
    path: Path
    error: ThumbnailerError


@dataclass(frozen=True)
class ItemFailure:
    """A per-file failure collected when running with keep-going"""
    item: WorkItem
    error: ThumbnailerError


@dataclass
class RunSummary:
    """Outcome of one strategy run"""
    processed: int = 0
    failures: List[ItemFailure] = field(default_factory=list)
    bytes_read: int = 0
    bytes_written: int = 0
    elapsed: float = 0.0
    peak_input_buffered: Optional[int] = None
    peak_output_buffered: Optional[int] = None

    @property
    def ok(self) -> bool:
        return not self.failures
