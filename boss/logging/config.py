"""
Logging configuration for boss.

This module handles the centralized logging configuration including:
- Console output on the diagnostic stream (stderr)
- Optional rotating file output
- Global debug flag mechanism
- Logger retrieval with consistent naming
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

# Global debug flag
_DEBUG_MODE = False

# Root logger for the package
_ROOT_LOGGER = "boss"

# Default log format with detailed context
_DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(module)s.%(funcName)s:%(lineno)d | %(message)s"

# Console output is for humans running the CLI: keep it short
_CONSOLE_FORMAT = "%(levelname)s: %(message)s"

# Color formatting for console output
_LOG_COLORS = {
    "DEBUG": "\033[94m",  # Blue
    "INFO": "\033[92m",  # Green
    "WARNING": "\033[93m",  # Yellow
    "ERROR": "\033[91m",  # Red
    "CRITICAL": "\033[91m\033[1m",  # Bold Red
    "RESET": "\033[0m",  # Reset
}


class ColorFormatter(logging.Formatter):
    """Formatter that adds colors to log levels for console output."""

    def format(self, record):
        levelname = record.levelname
        if levelname in _LOG_COLORS:
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = (
                f"{_LOG_COLORS[levelname]}{levelname}{_LOG_COLORS['RESET']}"
            )
        return super().format(record)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Logger name, typically __name__ of the calling module

    Returns:
        A logger instance under the package hierarchy
    """
    return logging.getLogger(name)


def set_debug_mode(enabled: bool) -> None:
    """
    Set the global debug mode flag.

    Args:
        enabled: True to enable debug mode, False to disable
    """
    global _DEBUG_MODE
    _DEBUG_MODE = enabled

    root_logger = logging.getLogger(_ROOT_LOGGER)
    root_logger.setLevel(logging.DEBUG if enabled else logging.INFO)
    for handler in root_logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(
            handler, logging.FileHandler
        ):
            handler.setLevel(logging.DEBUG if enabled else logging.WARNING)


def is_debug_mode() -> bool:
    """
    Check if debug mode is currently enabled.

    Returns:
        True if debug mode is enabled, False otherwise
    """
    return _DEBUG_MODE


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
    max_file_size_mb: int = 10,
    backup_count: int = 5,
    color: bool = True,
) -> None:
    """
    Configure the package logger with console and optional file outputs.

    Handlers are attached to the ``boss`` logger, not the root logger, so an
    application embedding the client keeps control of its own logging.

    Args:
        log_dir: Directory to store log files; no file output when None
        console_level: Logging level for the stderr handler
        file_level: Logging level for file output
        max_file_size_mb: Maximum size of each log file in MB before rotation
        backup_count: Number of backup log files to keep
        color: Colourise level names on the console
    """
    boss_logger = logging.getLogger(_ROOT_LOGGER)
    boss_logger.setLevel(logging.DEBUG if is_debug_mode() else logging.INFO)
    boss_logger.propagate = False

    # Clear any existing handlers to avoid duplicates if reconfigured
    for handler in boss_logger.handlers[:]:
        boss_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if is_debug_mode() else console_level)
    formatter_cls = ColorFormatter if color else logging.Formatter
    console_handler.setFormatter(formatter_cls(_CONSOLE_FORMAT))
    boss_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(exist_ok=True, parents=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_path / "boss.log",
            maxBytes=max_file_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        boss_logger.addHandler(file_handler)

    boss_logger.debug(
        f"boss logging initialized (console: {logging.getLevelName(console_level)}, "
        f"files: {log_dir or 'disabled'})"
    )
