"""
Logging service for MemeForge.

One root configuration for the whole app: a console handler plus a daily
log file under ~/.local/share/memeforge/logs/. Files older than
LOG_RETENTION_DAYS are pruned at startup. The level can be raised or
lowered with the MEMEFORGE_LOG_LEVEL environment variable.
"""

import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Union

DEFAULT_LOG_DIR = Path.home() / ".local" / "share" / "memeforge" / "logs"
LOG_RETENTION_DAYS = 14
LOG_LEVEL_ENV = "MEMEFORGE_LOG_LEVEL"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers; httpx logs every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore")

_configured = False


def resolve_level(level: Union[int, str, None] = None) -> int:
    """
    Turn a level name or number into a logging level.

    MEMEFORGE_LOG_LEVEL wins over the argument; unknown names fall back to INFO.
    """
    level = os.environ.get(LOG_LEVEL_ENV) or level
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        value = logging.getLevelName(level.strip().upper())
        if isinstance(value, int):
            return value
    return logging.INFO


def log_file_for(log_dir: Path, day: Optional[datetime] = None) -> Path:
    day = day or datetime.now()
    return log_dir / f"memeforge_{day:%Y%m%d}.log"


def prune_old_logs(log_dir: Path, keep_days: int = LOG_RETENTION_DAYS) -> int:
    """Delete daily log files older than ``keep_days``. Returns the count removed."""
    cutoff = (datetime.now() - timedelta(days=keep_days)).strftime("%Y%m%d")
    removed = 0
    for path in log_dir.glob("memeforge_*.log"):
        stamp = path.stem.split("_", 1)[-1]
        if stamp.isdigit() and stamp < cutoff:
            try:
                path.unlink()
                removed += 1
            except OSError:
                continue
    return removed


def setup_logging(
    log_level: Union[int, str, None] = None,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure logging for the application.

    Only the first call installs handlers; later calls are ignored so tests
    and the entry point can both call it.
    """
    global _configured
    if _configured:
        return

    level = resolve_level(log_level)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_to_file:
        log_dir = log_dir or DEFAULT_LOG_DIR
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file_for(log_dir), encoding="utf-8")
        except OSError as e:
            root.warning(f"Log file unavailable ({e}), logging to console only")
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
            removed = prune_old_logs(log_dir)
            if removed:
                root.debug(f"Removed {removed} old log files")

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Named logger; modules call this with ``__name__``."""
    return logging.getLogger(name)
