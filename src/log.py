from __future__ import annotations

import logging
import os
import sys
import threading
from datetime import datetime
from typing import Any, Dict, Optional

LOGGER_NAME = "archive_bot"
LINE_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"


class _IsoFormatter(logging.Formatter):
    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        return datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="milliseconds")


class _MaxLevelFilter(logging.Filter):
    def __init__(self, below: int) -> None:
        super().__init__()
        self.below = below

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.below


def configure_logging() -> logging.Logger:
    """Set up third-party logging and the bot's own console handlers.

    DEBUG/INFO lines of the bot logger go to stdout, WARNING and above to
    stderr. Library loggers keep the plain ``basicConfig`` format.
    """
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    # httpx logs full request URLs, which include the bot token
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    logger.handlers.clear()

    formatter = _IsoFormatter(LINE_FORMAT)

    low = logging.StreamHandler(sys.stdout)
    low.setLevel(logging.DEBUG)
    low.addFilter(_MaxLevelFilter(logging.WARNING))
    low.setFormatter(formatter)

    high = logging.StreamHandler(sys.stderr)
    high.setLevel(logging.WARNING)
    high.setFormatter(formatter)

    logger.addHandler(low)
    logger.addHandler(high)
    return logger


def debug_enabled() -> bool:
    return "DEBUG" in os.environ


class _Writer:
    """Four severity-levelled write operations over a stdlib logger."""

    def __init__(self, logger: logging.Logger, prefix: str = "") -> None:
        self._logger = logger
        self._prefix = prefix

    def _write(self, level: int, msg: Any, args: tuple) -> None:
        self._logger.log(level, self._prefix + str(msg), *args)

    def debug(self, msg: Any, *args: Any) -> None:
        # DEBUG is read on every call
        if debug_enabled():
            self._write(logging.DEBUG, msg, args)

    def info(self, msg: Any, *args: Any) -> None:
        self._write(logging.INFO, msg, args)

    def warn(self, msg: Any, *args: Any) -> None:
        self._write(logging.WARNING, msg, args)

    def error(self, msg: Any, *args: Any) -> None:
        self._write(logging.ERROR, msg, args)


class ThreadLogger(_Writer):
    def __init__(self, logger: logging.Logger, thread_name: str, sequence_id: int) -> None:
        super().__init__(logger, "[{name}:{seq}] ".format(name=thread_name, seq=sequence_id))
        self.thread_name = thread_name
        self.sequence_id = sequence_id


class Logger(_Writer):
    """Process-scoped logger with numbered per-flow child loggers."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        super().__init__(logger or logging.getLogger(LOGGER_NAME))
        self._sequences: Dict[str, int] = {}
        self._lock = threading.Lock()

    def create_thread(self, label: str) -> ThreadLogger:
        with self._lock:
            sequence_id = self._sequences.get(label, 0) + 1
            self._sequences[label] = sequence_id
        return ThreadLogger(self._logger, label, sequence_id)
