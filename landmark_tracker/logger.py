"""
Logging setup for LandmarkTracker.

Everything goes to a rotating file under the per-user state directory.
The console gets INFO (or DEBUG) and above, with repeated per-frame
warnings such as rejected frames throttled to one per call site and
interval.
"""

import logging
import os
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Callable, Optional

from .config import (
    LOG_FILENAME,
    LOG_MAX_BYTES,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_THROTTLE_S,
)

LOGGER_NAME = "LandmarkTracker"

FILE_FORMAT = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(name)s.%(funcName)s:%(lineno)d | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
CONSOLE_FORMAT = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S"
)


def get_app_directory(*parts: str, cache: bool = False) -> Path:
    """
    Get (and create) a per-user directory for LandmarkTracker.

    Windows: %APPDATA% for state, %LOCALAPPDATA% for caches.
    Elsewhere: $XDG_STATE_HOME (~/.local/state) for state,
    $XDG_CACHE_HOME (~/.cache) for caches.

    Args:
        *parts: Subdirectories below the application directory.
        cache: Use the cache location instead of the state location.
    """
    if sys.platform == "win32":
        env, fallback = ("LOCALAPPDATA", "~") if cache else ("APPDATA", "~")
    elif cache:
        env, fallback = "XDG_CACHE_HOME", "~/.cache"
    else:
        env, fallback = "XDG_STATE_HOME", "~/.local/state"

    base = os.environ.get(env) or os.path.expanduser(fallback)
    path = Path(base, "LandmarkTracker", *parts)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_log_directory() -> Path:
    return get_app_directory("logs")


class WarningThrottle(logging.Filter):
    """
    Pass at most one WARNING per call site every `interval_s` seconds.

    Other levels always pass. Dropped records are counted in `suppressed`;
    see suppressed_warning_count().
    """

    def __init__(
        self,
        interval_s: float = LOG_CONSOLE_THROTTLE_S,
        clock: Callable[[], float] = time.monotonic
    ):
        super().__init__()
        self.interval_s = interval_s
        self.suppressed = 0
        self._clock = clock
        self._last_passed: dict[tuple[str, int], float] = {}

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno != logging.WARNING:
            return True

        site = (record.name, record.lineno)
        now = self._clock()
        last = self._last_passed.get(site)
        if last is not None and now - last < self.interval_s:
            self.suppressed += 1
            return False

        self._last_passed[site] = now
        return True


def setup_logging(
    debug: bool = False,
    log_to_file: bool = True,
    log_filename: Optional[str] = None
) -> logging.Logger:
    """
    Configure and return the application logger.

    Args:
        debug: Show DEBUG records on the console.
        log_to_file: Also write every record to the rotating log file.
        log_filename: Override default log filename.

    Returns:
        The "LandmarkTracker" logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug or log_to_file else logging.INFO)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(CONSOLE_FORMAT)
    console_handler.addFilter(WarningThrottle())
    logger.addHandler(console_handler)

    if log_to_file:
        log_path = get_log_directory() / (log_filename or LOG_FILENAME)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FILE_FORMAT)
        logger.addHandler(file_handler)

        logger.debug(f"Logging to file: {log_path}")

    return logger


def suppressed_warning_count(logger: logging.Logger) -> int:
    """Total warnings dropped by the console throttles of `logger`."""
    return sum(
        f.suppressed
        for handler in logger.handlers
        for f in handler.filters
        if isinstance(f, WarningThrottle)
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Child of the application logger, or the application logger itself."""
    base_logger = logging.getLogger(LOGGER_NAME)
    if name:
        return base_logger.getChild(name)
    return base_logger
