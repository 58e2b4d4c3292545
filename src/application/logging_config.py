"""Process-level logging setup for services that run the aim planner."""

from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# GDAL/rasterio emit a debug line per environment and dataset open
NOISY_LOGGERS = ("rasterio", "rasterio._env", "rasterio._base")


def init_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure the root logger for console (and optionally file) output.

    Parameters
    ----------
    level: str
        Logging level name, e.g. "DEBUG", "INFO", "WARNING", "ERROR".
        Unknown names fall back to INFO.
    log_file: Optional[str]
        If provided, logs are also written to this file (truncated on start).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w")
        file_handler.setLevel(numeric_level)
        handlers.append(file_handler)
    for handler in handlers:
        handler.setFormatter(formatter)

    # force=True so a second call (tests, reloads) replaces earlier handlers
    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
