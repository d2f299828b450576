"""Bulk JPEG thumbnail generation for directory trees"""

from .errors import (
    ConfigError,
    DecodeError,
    EncodeError,
    IoError,
    QueueProtocolError,
    ThumbnailerError,
)
from .models import FilterKind, ResizeConfig, RunSummary, WorkItem

__version__ = "1.0.0"

__all__ = [
    'ConfigError',
    'DecodeError',
    'EncodeError',
    'IoError',
    'QueueProtocolError',
    'ThumbnailerError',
    'FilterKind',
    'ResizeConfig',
    'RunSummary',
    'WorkItem'
]
