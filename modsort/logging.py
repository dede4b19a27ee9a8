"""Logging utilities for modsort runs."""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "modsort"

CONSOLE_FORMAT = "[modsort] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s"


class SourceFormatter(logging.Formatter):
    """Prefix the message with the source file passed as ``extra={"path": ...}``.

    Records logged without a path are formatted unchanged.
    """

    def formatMessage(self, record: logging.LogRecord) -> str:
        path = getattr(record, "path", None)
        if path is None:
            return super().formatMessage(record)
        original = record.message
        record.message = f"{path}: {original}"
        try:
            return super().formatMessage(record)
        finally:
            record.message = original


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the modsort hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the modsort logger.

    Console lines read ``[modsort] LEVEL path: message``. The optional file
    sink also records the time and the worker thread, since files are
    processed concurrently.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated in-process runs (tests, embedding) must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(SourceFormatter(CONSOLE_FORMAT))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(SourceFormatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


__all__ = ["SourceFormatter", "configure_logging", "get_logger"]
