"""Error taxonomy for thumbnail runs"""

from pathlib import Path
from typing import Optional, Union


class ThumbnailerError(Exception):
    """Base class for every error raised by a thumbnail run"""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None

    def __str__(self) -> str:
        message = super().__str__()
        if self.path is not None:
            return f"{message}: {self.path}"
        return message


class DecodeError(ThumbnailerError):
    """Source bytes are not a valid or supported image"""


class EncodeError(ThumbnailerError):
    """The JPEG encoder failed on a decoded image"""


class IoError(ThumbnailerError):
    """File read, write, create or permission failure"""


class QueueProtocolError(ThumbnailerError):
    """A queue was used after it was closed; always an internal fault"""


class ConfigError(ThumbnailerError):
    """Invalid filter name, numeric argument or config file"""
