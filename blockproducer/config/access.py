"""Process-wide config: loaded once per file, reloaded on demand."""

from __future__ import annotations

import threading
from pathlib import Path

from loguru import logger

from blockproducer.config.loader import get_config_path, load_config
from blockproducer.config.schema import Config

_lock = threading.RLock()
_loaded: dict[Path, Config] = {}


def _resolve(config_path: Path | None) -> Path:
    return Path(config_path or get_config_path()).expanduser().resolve()


def get_config(*, config_path: Path | None = None, force_reload: bool = False) -> Config:
    """Config for ``config_path`` (default location when None), cached per resolved path."""
    path = _resolve(config_path)
    with _lock:
        config = None if force_reload else _loaded.get(path)
        if config is None:
            config = load_config(path)
            _loaded[path] = config
            logger.debug(f"Config loaded from {path}" if path.exists() else f"No config at {path}, using defaults")
        return config


def clear_config_cache(*, config_path: Path | None = None) -> None:
    """Forget one cached config, or all of them when no path is given."""
    with _lock:
        if config_path is None:
            _loaded.clear()
        else:
            _loaded.pop(_resolve(config_path), None)
