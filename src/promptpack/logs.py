"""
Diagnostic logging for the command line.

Records go to stderr so they never mix with bundled content on stdout.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

from colorama import Fore, Style, just_fix_windows_console

_LEVEL_COLORS = {
    logging.DEBUG: Style.DIM,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED + Style.BRIGHT,
}


class ColorFormatter(logging.Formatter):
    def __init__(self, fmt: str = "[promptpack] %(levelname)s %(message)s", use_color: bool = True) -> None:
        super().__init__(fmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno) if self.use_color else None
        if not color:
            return message
        return color + message + Style.RESET_ALL


def setup_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> logging.Logger:
    """Attach one stderr handler to the ``promptpack`` logger, replacing any previous one."""
    stream = stream or sys.stderr
    just_fix_windows_console()

    logger = logging.getLogger("promptpack")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    isatty = getattr(stream, "isatty", None)
    handler.setFormatter(ColorFormatter(use_color=bool(isatty and isatty())))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
