"""Logging utilities for navgrid.

Provides color-coded console output so path planning chatter, recoverable
geometry warnings and movement lifecycle messages are easy to tell apart.
"""

import os
from enum import Enum


class Color(Enum):
    """ANSI color codes for terminal output."""

    # Colors for message types
    BLUE = "\033[94m"      # Deterministic planning output (search, string pulling)
    YELLOW = "\033[93m"    # Recoverable conditions (fail-closed traces, clamped config)
    RED = "\033[91m"       # Errors
    GREEN = "\033[92m"     # Movement finished / success
    CYAN = "\033[96m"      # Info/metadata

    # Formatting
    BOLD = "\033[1m"
    RESET = "\033[0m"


# Markers for message types (color-blind accessible)
LOG_TAG_DETERMINISTIC = "[•]"
LOG_TAG_WARNING = "[~]"
LOG_TAG_ERROR = "[!]"
LOG_TAG_SUCCESS = "[✓]"
LOG_TAG_INFO = "[i]"

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


def _enabled(level: str) -> bool:
    """Return True if ``level`` passes the NAVGRID_LOG_LEVEL threshold."""
    threshold = _LEVELS.get(os.getenv("NAVGRID_LOG_LEVEL", "WARNING").upper(), 30)
    return _LEVELS[level] >= threshold


def colored(text: str, color: Color, bold: bool = False) -> str:
    """Wrap text in ANSI color codes if colors are enabled.

    Args:
        text: Text to colorize
        color: Color to apply
        bold: Whether to make text bold

    Returns:
        Colorized text if NAVGRID_NO_COLOR is not set, otherwise plain text
    """
    if os.getenv("NAVGRID_NO_COLOR"):
        return text

    prefix = color.value
    if bold:
        prefix = Color.BOLD.value + prefix

    return f"{prefix}{text}{Color.RESET.value}"


def log_debug(message: str) -> None:
    """Log a planning detail (blue), only at DEBUG level."""
    if _enabled("DEBUG"):
        print(colored(f"{LOG_TAG_DETERMINISTIC} {message}", Color.BLUE))


def log_info(message: str) -> None:
    """Log metadata/info (cyan)."""
    if _enabled("INFO"):
        print(colored(f"{LOG_TAG_INFO} {message}", Color.CYAN))


def log_warning(message: str) -> None:
    """Log a recoverable condition (yellow)."""
    if _enabled("WARNING"):
        print(colored(f"{LOG_TAG_WARNING} {message}", Color.YELLOW))


def log_error(message: str) -> None:
    """Log an error (red)."""
    if _enabled("ERROR"):
        print(colored(f"{LOG_TAG_ERROR} {message}", Color.RED))


def log_success(message: str) -> None:
    """Log a success (green)."""
    if _enabled("INFO"):
        print(colored(f"{LOG_TAG_SUCCESS} {message}", Color.GREEN))

