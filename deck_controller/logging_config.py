"""Logging setup for deck-controller.

Every logger lives under the ``deck_controller`` namespace. The CLI and the
virtual deck call ``setup_logging`` once at startup; the rest of the package
only ever does ``logging.getLogger(__name__)``.

Records go to a rotating file in ~/.config/deck-controller/logs and, when
asked for, to a console stream. The virtual deck owns the terminal, so it
logs to the file only.
"""

from __future__ import annotations

import logging
import sys
from collections import deque
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TextIO

ROOT_LOGGER_NAME = "deck_controller"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONTEXT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [{tags}]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

LOG_DIR = Path.home() / ".config" / "deck-controller" / "logs"
LOG_FILENAME = "deck-controller.log"


def get_log_file_path() -> Path:
    """Path of the current log file. Creates the log directory."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    return LOG_DIR / LOG_FILENAME


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _prepare(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(
    *,
    level: int | str = logging.INFO,
    log_to_file: bool = True,
    log_to_console: bool = False,
    console_stream: TextIO | None = None,
    max_bytes: int = MAX_LOG_BYTES,
    backup_count: int = LOG_BACKUPS,
    debug_modules: list[str] | None = None,
) -> logging.Logger:
    """Route the deck_controller loggers to a file and/or a stream.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or number.
        log_to_file: Write to the rotating log file.
        log_to_console: Write to ``console_stream`` (stderr by default).
        console_stream: Stream for console output.
        max_bytes: Size at which the log file rotates.
        backup_count: Rotated files to keep.
        debug_modules: Modules (with or without the package prefix) to log
            at DEBUG whatever ``level`` says.

    Returns:
        The package root logger.
    """
    resolved = _resolve_level(level)
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.setLevel(resolved)

    if log_to_file:
        file_handler = RotatingFileHandler(
            get_log_file_path(),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        root.addHandler(_prepare(file_handler, resolved))

    if log_to_console:
        stream = console_stream if console_stream is not None else sys.stderr
        root.addHandler(_prepare(logging.StreamHandler(stream), resolved))

    for name in debug_modules or ():
        get_logger(name).setLevel(logging.DEBUG)

    return root


def enable_debug_mode() -> None:
    """DEBUG everywhere, to the file and to stderr."""
    setup_logging(level=logging.DEBUG, log_to_console=True)


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` inside the deck_controller namespace."""
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


class LogContext:
    """Tag every record written through ``logger``'s handlers with key=value pairs.

    Example:
        with LogContext(logger, binding_id="key-3", operation="cycle_mode"):
            logger.info("Rendering")
    """

    def __init__(self, logger: logging.Logger, **context: str | int | bool) -> None:
        self.logger = logger
        self.context = context
        self._saved: list[tuple[logging.Handler, logging.Formatter | None]] = []

    def __enter__(self) -> LogContext:
        tags = " ".join(f"{key}={value}" for key, value in self.context.items())
        formatter = logging.Formatter(CONTEXT_LOG_FORMAT.format(tags=tags), DATE_FORMAT)
        for handler in self.logger.handlers:
            self._saved.append((handler, handler.formatter))
            handler.setFormatter(formatter)
        return self

    def __exit__(self, *exc_info: object) -> None:
        for handler, formatter in self._saved:
            handler.setFormatter(formatter)
        self._saved.clear()


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    message: str = "An error occurred",
    *,
    level: int = logging.ERROR,
    include_traceback: bool = True,
) -> None:
    """Log ``exc`` after ``message``, with its traceback unless told otherwise."""
    detail = f"{message}: {exc}"
    if include_traceback:
        logger.log(level, "%s", detail, exc_info=exc)
    else:
        logger.log(level, "%s (%s)", detail, type(exc).__name__)


def get_recent_logs(lines: int = 100) -> list[str]:
    """The last ``lines`` lines of the current log file, oldest first."""
    log_file = get_log_file_path()
    if not log_file.exists():
        return []
    with open(log_file, encoding="utf-8") as f:
        return list(deque(f, maxlen=lines))
