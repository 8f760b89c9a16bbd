"""
Colored console logging for the b2cs command line.
"""

import logging
import os
import sys
from typing import Optional

RESET = "\033[0m"

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1m\033[31m",
}

# Loggers whose names contain one of these are shown in blue.
SERVER_KEYWORDS = ("server", "uvicorn", "fastapi", "starlette")

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors level names and server component names."""

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and _supports_color()

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        levelname_orig = record.levelname
        name_orig = record.name

        record.levelname = f"{LEVEL_COLORS.get(record.levelno, '')}{record.levelname}{RESET}"
        if any(keyword in record.name.lower() for keyword in SERVER_KEYWORDS):
            record.name = f"\033[34m{record.name}{RESET}"

        try:
            return super().format(record)
        finally:
            record.levelname = levelname_orig
            record.name = name_orig


def _supports_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def setup_colored_logging(level: int = logging.INFO, use_colors: bool = True) -> None:
    """
    Replace the root logger's handlers with a single colored stderr handler.

    Args:
        level: The logging level (default: INFO)
        use_colors: Whether to use colors (auto-detects TTY support)
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(DEFAULT_FORMAT, DEFAULT_DATE_FORMAT, use_colors=use_colors))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
