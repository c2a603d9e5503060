"""
Logging system for boss.

This module provides a centralized logging configuration with a colourised
diagnostic stream, optional rotating file output, and a global debug flag.
"""

from boss.logging.config import (
    configure_logging,
    get_logger,
    is_debug_mode,
    set_debug_mode,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "set_debug_mode",
    "is_debug_mode",
]
