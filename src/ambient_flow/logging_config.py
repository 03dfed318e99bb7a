"""Console logging for the CLI."""

from __future__ import annotations

import logging
import sys
from datetime import datetime

LOGGER_NAME = "ambient_flow"


class ConsoleFormatter(logging.Formatter):
    """``[HH:MM:SS] LEVEL    message`` with the level coloured on a TTY."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = False) -> None:
        super().__init__()
        self._use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{record.levelname:<8}"
        if self._use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"
        line = f"[{timestamp}] {level} {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(level: str | int = logging.INFO, stream=None) -> logging.Logger:
    """Attach a single console handler to the package logger.

    Safe to call more than once; earlier handlers are replaced.
    """
    stream = stream or sys.stderr
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers = []

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ConsoleFormatter(use_color=hasattr(stream, "isatty") and stream.isatty()))
    logger.addHandler(handler)
    return logger
