"""Configuration management"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import ConfigError
from .models import FilterKind, ResizeConfig
from .utils.logger import logger

DEFAULTS: Dict[str, Any] = {
    'width': 120,
    'height': 150,
    'filter': 'nearest',
    'asynchronous': False,
    'limit': 10,
    'extension': 'tif',
    'workers': None,  # CPU count
    'keep_going': False,
    'progress': True,
    'log_file': None,
    'verbose': False,
}


def parse_extensions(value: Union[str, List[str], None]) -> Optional[List[str]]:
    """Normalize 'tif,PNG' or ['.tif', 'png'] to ['.tif', '.png']; empty means no filter"""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.split(',')
    extensions = []
    for ext in value:
        ext = str(ext).strip().lower()
        if not ext or ext == '*':
            continue
        extensions.append(ext if ext.startswith('.') else f'.{ext}')
    return extensions or None


def _positive_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    return value


class Config:
    """Run configuration: built-in defaults < JSON config file < CLI overrides"""

    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        self.config_path = Path(config_path).absolute() if config_path else None
        self.data = dict(DEFAULTS)
        if self.config_path is not None:
            self.data.update(self._load_config())
        self.data.update({k: v for k, v in (overrides or {}).items() if v is not None})

        unknown = sorted(set(self.data) - set(DEFAULTS))
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}", self.config_path)

        self.resize = ResizeConfig(
            width=_positive_int('width', self.data['width']),
            height=_positive_int('height', self.data['height']),
            filter_kind=FilterKind.parse(str(self.data['filter'])),
        )
        self.limit = _positive_int('limit', self.data['limit'])
        workers = self.data['workers']
        self.workers = _positive_int('workers', workers) if workers is not None else (os.cpu_count() or 1)
        self.extensions = parse_extensions(self.data['extension'])

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from JSON file"""
        try:
            with open(self.config_path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.error(f"❌ Config file not found at {self.config_path}")
            raise ConfigError("Config file not found", self.config_path) from None
        except json.JSONDecodeError as e:
            logger.error(f"❌ Invalid JSON in config file: {e}")
            raise ConfigError(f"Invalid JSON in config file ({e})", self.config_path) from e

        if not isinstance(data, dict):
            raise ConfigError("Config file must hold a JSON object", self.config_path)
        # Accept the CLI spelling of keys ("keep-going")
        return {key.replace('-', '_'): value for key, value in data.items()}

    @property
    def asynchronous(self) -> bool:
        return bool(self.data['asynchronous'])

    @property
    def keep_going(self) -> bool:
        return bool(self.data['keep_going'])

    @property
    def progress(self) -> bool:
        return bool(self.data['progress'])

    @property
    def log_file(self) -> Optional[str]:
        return self.data['log_file']

    @property
    def verbose(self) -> bool:
        return bool(self.data['verbose'])
