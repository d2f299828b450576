"""Simplified logging configuration"""

import logging
import sys
from typing import Optional


class ThumbnailerLogger:
    _instance: Optional['ThumbnailerLogger'] = None
    _logger: Optional[logging.Logger] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._setup_logger()
        return cls._instance

    def _setup_logger(self):
        """Setup console-only logging until configure() is called"""
        self._logger = logging.getLogger('thumbnailer')
        self._logger.setLevel(logging.INFO)
        self._logger.propagate = False
        for handler in list(self._logger.handlers):
            handler.close()
        self._logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        self._logger.addHandler(console_handler)

    def configure(self, verbose: bool = False, log_file: Optional[str] = None):
        """Reset handlers for a run: level, stderr console, optional log file"""
        self._setup_logger()
        self._logger.setLevel(logging.DEBUG if verbose else logging.INFO)

        if log_file:
            file_handler = logging.FileHandler(log_file, mode='a')
            file_handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(message)s'))
            self._logger.addHandler(file_handler)

    def info(self, message: str):
        self._logger.info(message)

    def error(self, message: str):
        self._logger.error(message)

    def warning(self, message: str):
        self._logger.warning(message)

    def debug(self, message: str):
        self._logger.debug(message)

# Singleton instance
logger = ThumbnailerLogger()
