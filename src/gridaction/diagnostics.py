"""
Logging helpers.

gridaction logs through the standard ``logging`` module under the
``gridaction`` namespace and installs only a NullHandler, so it stays silent
until the application configures logging. ``setup_logging`` is a small
convenience for scripts; ``DiagnosticBuffer`` keeps the most recent records
in memory so a caller can show a diagnostic trail after a batch.
"""

import logging
import sys
from collections import deque
from dataclasses import dataclass
from typing import IO, Deque, List, Optional


LOGGER_NAME = "gridaction"
MAX_DIAGNOSTIC_ENTRIES = 100


class LabeledFormatter(logging.Formatter):
    """Formats records as ``LABEL logger: message``."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        message = f"{label} {record.name}: {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


@dataclass(frozen=True)
class DiagnosticEntry:
    created: float
    level: str
    logger: str
    message: str


class DiagnosticBuffer(logging.Handler):
    """Handler that keeps the newest *capacity* records, newest first.

    Usage::

        buffer = DiagnosticBuffer()
        logging.getLogger("gridaction").addHandler(buffer)
        dispatcher.execute(actions)
        for entry in buffer.entries():
            print(entry.level, entry.message)
    """

    def __init__(self, capacity: int = MAX_DIAGNOSTIC_ENTRIES, level: int = logging.DEBUG) -> None:
        super().__init__(level)
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._entries: Deque[DiagnosticEntry] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        self._entries.appendleft(DiagnosticEntry(
            created=record.created,
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
        ))

    def entries(self, level: Optional[str] = None) -> List[DiagnosticEntry]:
        if level is None:
            return list(self._entries)
        return [e for e in self._entries if e.level == level.upper()]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger, or a child of it."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)


def setup_logging(level: int = logging.INFO, stream: Optional[IO[str]] = None) -> logging.Logger:
    """Attach a labeled stream handler to the package logger.

    Calling it again replaces the handler it installed previously instead of
    adding a second one.
    """
    logger = get_logger()
    logger.setLevel(level)
    for handler in list(logger.handlers):
        if getattr(handler, "_gridaction_stream", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(LabeledFormatter())
    handler._gridaction_stream = True
    logger.addHandler(handler)
    return logger
