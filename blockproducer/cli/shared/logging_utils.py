"""Loguru sinks for the CLI: stderr at a chosen level plus optional rotating files."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from blockproducer.utils.exceptions import sanitize_error_message
from blockproducer.utils.helpers import get_data_path

_SINK_IDS: dict[str, int] = {}


def get_log_dir() -> Path:
    return get_data_path() / "logs"


def _redact(record) -> None:
    record["message"] = sanitize_error_message(record["message"])


def configure_console_logging(level: str = "INFO") -> None:
    """Single stderr sink at ``level``; bearer tokens and secrets are redacted in every sink."""
    logger.remove()
    _SINK_IDS.clear()
    logger.configure(patcher=_redact)
    logger.add(sys.stderr, level=level.upper(), backtrace=False, diagnose=False)


def ensure_rotating_log_file(name: str, level: str = "INFO") -> Path:
    """Add (once per ``name``) a rotating file sink under ``~/.blockproducer/logs``."""
    log_path = get_log_dir() / f"{name}.log"
    if name not in _SINK_IDS:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _SINK_IDS[name] = logger.add(
            str(log_path),
            level=level.upper(),
            rotation="10 MB",
            retention="14 days",
            enqueue=True,
            encoding="utf-8",
            backtrace=False,
            diagnose=False,
        )
    return log_path
