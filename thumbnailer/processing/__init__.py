"""Work-list building, the resize transform and the two execution strategies"""

from .bounded_queue import BoundedQueue, CloseBarrier, QueueClosed
from .data_parallel import DataParallelStrategy
from .enumerator import PathEnumerator
from .pipelined import PipelinedStrategy
from .resizer import JPEG_QUALITY, ResizeWorker, resize_image

__all__ = [
    'BoundedQueue',
    'CloseBarrier',
    'QueueClosed',
    'DataParallelStrategy',
    'PathEnumerator',
    'PipelinedStrategy',
    'JPEG_QUALITY',
    'ResizeWorker',
    'resize_image'
]
