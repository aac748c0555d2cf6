"""Logging configuration for isoreconcile.

Engine modules only create loggers (``logging.getLogger(__name__)``); the
command-line entry point decides where records go. Console records are
rendered by rich on stderr so they never interleave with command summaries
printed on stdout.

Example:
    >>> from isoreconcile.utils.logging import setup_logging, get_logger, Timer
    >>> setup_logging(verbosity=2)
    >>> logger = get_logger(__name__)
    >>> with Timer("Gene clustering", logger):
    ...     genes = assign_gene_ids(read_classes)
"""

import logging
import time
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

# =============================================================================
# Constants
# =============================================================================

PACKAGE_LOGGER = "isoreconcile"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PLAIN_FORMAT = "%(levelname)s: %(message)s"

VERBOSITY_LEVELS = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


# =============================================================================
# Setup Functions
# =============================================================================


def _console_handler(use_rich: bool) -> logging.Handler:
    if use_rich:
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            show_time=False,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    return handler


def setup_logging(
    verbosity: int = 1,
    log_file: Path | str | None = None,
    use_rich: bool = True,
) -> logging.Logger:
    """Route package log records to the console and, optionally, a file.

    Calling this again replaces the handlers installed by the previous call.

    Args:
        verbosity: 0 for warnings only, 1 for progress, 2 for per-round detail.
        log_file: File receiving every record down to DEBUG.
        use_rich: Render console records with rich.

    Returns:
        The package logger.
    """
    level = VERBOSITY_LEVELS.get(verbosity, logging.DEBUG)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if log_file is not None else level)
    logger.handlers.clear()
    logger.propagate = False

    console_handler = _console_handler(use_rich)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module (pass ``__name__``)."""
    return logging.getLogger(name)


# =============================================================================
# Timing Utilities
# =============================================================================


class Timer:
    """Context manager logging the wall-clock time of a step.

    Attributes:
        description: Step name used in the log message.
        elapsed: Seconds spent inside the block, set on exit.

    Example:
        >>> with Timer("Annotation matching", logger) as timer:
        ...     matches = calculate_distance_to_annotation(queries, annotations)
        >>> timer.elapsed
        0.42
    """

    def __init__(self, description: str, logger: logging.Logger) -> None:
        self.description = description
        self.logger = logger
        self.elapsed: float = 0.0
        self._start: float = 0.0

    def __enter__(self) -> "Timer":
        self.logger.debug(f"{self.description} started")
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self.elapsed = time.perf_counter() - self._start
        self.logger.info(f"{self.description} completed in {self.elapsed:.2f}s")
