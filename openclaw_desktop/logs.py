"""Logging setup for the desktop app."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from openclaw_desktop.config import ConfigError, openclaw_dir

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def default_log_file() -> Path | None:
    """``~/.openclaw/logs/desktop.log``, or None without a home directory."""
    try:
        return openclaw_dir() / "logs" / "desktop.log"
    except ConfigError:
        return None


def configure_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """Log to stderr and, when possible, to a rotating file."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error: OSError | None = None
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                RotatingFileHandler(log_file, maxBytes=1024 * 1024, backupCount=3, encoding="utf-8")
            )
        except OSError as exc:
            file_error = exc

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    if file_error is not None:
        logging.getLogger(__name__).warning("Logging to stderr only: %s", file_error)
