from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Run output for cfdi-reconcile.

All output goes through the ``cfdi_reconcile`` logger to stdout, one line per
event, prefixed by a severity label:

    INFO Excel rows: 1204
    WARN KEY_NOT_FOUND enero.json: record 2: cfdi_id 'A9' not found ...
    ERROR DECODE_ERROR enero.json: record 7: invalid JSON: ...
    SUMMARY excel_rows=1204 json_records=1204 files=3 ...

Module loggers (``logging.getLogger(__name__)``) are children of that logger
and need no handler of their own.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "log_summary",
    "set_debug",
    "reset_logging",
]

LOGGER_NAME = "cfdi_reconcile"

# Sits between INFO (20) and WARNING (30) so it survives the default level
SUMMARY_LEVEL = 25

_configured: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """``<LABEL> <message>``; WARNING prints as WARN."""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        SUMMARY_LEVEL: "SUMMARY",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        return f"{label} {record.getMessage()}"


class _StdoutHandler(logging.StreamHandler):
    """StreamHandler bound to whatever ``sys.stdout`` is when a record is emitted."""

    def __init__(self) -> None:
        super().__init__(sys.stdout)

    @property
    def stream(self) -> TextIO:  # type: ignore[override]
        return sys.stdout

    @stream.setter
    def stream(self, value: TextIO) -> None:
        pass


def _apply_level(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def setup_logging(level: int = logging.INFO, stream: TextIO | None = None) -> logging.Logger:
    """Attach the labeled stdout handler to the application logger.

    Calling it again returns the already configured logger untouched; after
    ``reset_logging`` a fresh handler replaces whatever was attached before.

    Args:
        level: logger and handler level
        stream: fixed output stream; None follows ``sys.stdout`` as it changes
            (redirections, pytest capture)
    """
    global _configured

    if _configured is not None:
        return _configured

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    logger = logging.getLogger(LOGGER_NAME)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)

    handler: logging.StreamHandler = (
        _StdoutHandler() if stream is None else logging.StreamHandler(stream)
    )
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    _apply_level(logger, level)
    # root handlers would print every line a second time
    logger.propagate = False

    _configured = logger
    return logger


def get_logger() -> logging.Logger:
    return _configured if _configured is not None else setup_logging()


def set_debug() -> None:
    """Switch the application logger and its handler to DEBUG (``-debug``)."""
    _apply_level(get_logger(), logging.DEBUG)


def log_summary(message: str) -> None:
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger so the next setup starts fresh (tests)."""
    global _configured
    _configured = None
