"""Logging configuration for PortManager."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union
import time
from functools import wraps

from .. import config

# Operations slower than this are logged as warnings
SLOW_THRESHOLD_MS = 100

# Create formatters
DETAILED_FORMAT = logging.Formatter(
    '%(asctime)s.%(msecs)03d | %(levelname)-8s | %(threadName)-12s | %(name)-28s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

SIMPLE_FORMAT = logging.Formatter(
    '%(asctime)s | %(levelname)-8s | %(message)s',
    datefmt='%H:%M:%S'
)


def setup_logging(level: int = logging.DEBUG, console_level: int = logging.WARNING,
                  log_dir: Union[str, Path, None] = None) -> logging.Logger:
    """
    Setup application-wide logging.

    Each run writes its own timestamped file, so a parser regression can be
    traced through the DEBUG decision points of that run only.

    Args:
        level: Level of the application logger (default DEBUG for parser diagnostics)
        console_level: Level of the stderr handler
        log_dir: Directory for the log file (default config.LOG_DIR)

    Returns:
        Root logger for the application
    """
    logger = logging.getLogger('portmanager')
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    log_dir = Path(log_dir) if log_dir is not None else config.LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"portmanager_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    # File handler - detailed logging, including the worker thread name
    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(DETAILED_FORMAT)
    logger.addHandler(file_handler)

    # Console handler - stderr keeps stdout clean for the port table
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(SIMPLE_FORMAT)
    logger.addHandler(console_handler)

    logger.info(f"Logging initialized. Log file: {log_file}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module."""
    return logging.getLogger(f'portmanager.{name}')


def timed(func):
    """Decorator to log function execution time."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        logger = get_logger('perf')
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
            elapsed = (time.perf_counter() - start) * 1000  # ms
            if elapsed > SLOW_THRESHOLD_MS:
                logger.warning(f"SLOW: {func.__qualname__} took {elapsed:.2f}ms")
            else:
                logger.debug(f"{func.__qualname__} took {elapsed:.2f}ms")
            return result
        except Exception as e:
            elapsed = (time.perf_counter() - start) * 1000
            logger.error(f"{func.__qualname__} failed after {elapsed:.2f}ms: {e}")
            raise
    return wrapper


class PerfTimer:
    """Context manager for timing code blocks."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or get_logger('perf')
        self.start: float = 0
        self.elapsed: float = 0

    def __enter__(self):
        self.start = time.perf_counter()
        self.logger.debug(f"Starting: {self.name}")
        return self

    def __exit__(self, *args):
        self.elapsed = (time.perf_counter() - self.start) * 1000
        if self.elapsed > SLOW_THRESHOLD_MS:
            self.logger.warning(f"SLOW: {self.name} took {self.elapsed:.2f}ms")
        else:
            self.logger.debug(f"Completed: {self.name} in {self.elapsed:.2f}ms")

