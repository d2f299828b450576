"""Utility modules"""

from .logger import logger
from .metrics import MetricsTracker

__all__ = [
    'logger',
    'MetricsTracker'
]
