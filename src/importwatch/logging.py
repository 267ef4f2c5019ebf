"""Log output for importwatch.

What is logged at which level:

- TRACE (5): every dependency edge the import hook records, and imports it
  could not resolve to a file
- DEBUG: sys.modules evictions, root re-arms, session start/stop details
- VERBOSE (15): files added to or dropped from the polling watcher
- INFO: each invalidated module, poller start/stop
- WARNING/ERROR: unreadable files, failing change callbacks
- CRITICAL: the watcher falling out of sync with the dependency graph

Nothing is printed unless ``setup_logging`` is called. Output goes to the file
named by the config or IMPORTWATCH_LOG, otherwise to stderr when it is a
terminal, so a host application's piped output stays clean.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from importwatch.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("importwatch")

ENV_LOG = "IMPORTWATCH_LOG"
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"

_initialized = False

_LEVEL_NAMES = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# verbose: 0 shows only errors, 4 shows every recorded edge
_VERBOSITY_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)


class _LowercaseLevelFormatter(logging.Formatter):
    """Formatter that emits lowercase level names."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Effective level for ``config``; ``verbose`` wins over ``level``.

    Unknown level names fall back to INFO and verbosity above 4 to TRACE.
    """
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        index = min(max(config.verbose, 0), len(_VERBOSITY_LEVELS) - 1)
        return _VERBOSITY_LEVELS[index]
    if config.level:
        return _LEVEL_NAMES.get(config.level.upper(), logging.INFO)
    return logging.INFO


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Attach a handler to the ``importwatch`` logger.

    Only the first call has an effect, so a host application and
    ``importwatch.start()`` can both call it.

    Args:
        config: Level, verbosity and log file. Without a file in the config,
            IMPORTWATCH_LOG is used.
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    level = resolve_level(config)
    logger.setLevel(level)
    formatter = _LowercaseLevelFormatter(LOG_FORMAT, datefmt="%H:%M:%S")

    log_path = config.file if config and config.file else os.environ.get(ENV_LOG)
    if not log_path:
        if sys.stderr.isatty():
            _add_stderr_handler(formatter, level)
        return

    try:
        handler = logging.FileHandler(os.path.expanduser(log_path), mode="a", encoding="utf-8")
    except OSError as e:
        if sys.stderr.isatty():
            print(f"[importwatch] Cannot open log file {log_path}: {e}", file=sys.stderr)
            _add_stderr_handler(formatter, level)
        return
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def reset_logging() -> None:
    """Remove importwatch's handlers so ``setup_logging`` applies again."""
    global _initialized
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    _initialized = False


def _add_stderr_handler(formatter: logging.Formatter, level: int) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """The ``importwatch`` logger, or its child ``importwatch.<name>``."""
    if name:
        return logger.getChild(name)
    return logger
