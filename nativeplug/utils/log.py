"""Logging for nativeplug.

Fetch and install steps report progress through a single package logger.
``info`` lines describe what is being fetched or changed, ``debug`` lines
carry resolution details. Console output goes to stderr at the level set
by ``NATIVEPLUG_LOG_LEVEL`` (WARNING by default); ``--verbose`` lowers it
and ``--log-file`` adds a DEBUG-level file with ``extra=`` context appended
as JSON.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

LOGGER_NAME = "nativeplug"
LOG_LEVEL_ENV_VAR = "NATIVEPLUG_LOG_LEVEL"

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

# Attributes every LogRecord has; anything else came in through ``extra=``.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def _record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class ContextFormatter(logging.Formatter):
    """UTC timestamps, with the record's ``extra`` context as a JSON suffix."""

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return stamp.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = _record_context(record)
        if not context:
            return message
        return f"{message} | {json.dumps(context, sort_keys=True, default=str)}"


def _level_from_env() -> int:
    name = os.getenv(LOG_LEVEL_ENV_VAR, "WARNING").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


class NativeplugLogger:
    """Package logger with a stderr console handler and an optional log file."""

    def __init__(self, name: str = LOGGER_NAME):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False

        self._console_handler = logging.StreamHandler(sys.stderr)
        self._console_handler.setLevel(_level_from_env())
        self._console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
        self.logger.addHandler(self._console_handler)

        self._file_handler: Optional[logging.FileHandler] = None

    @property
    def log_file(self) -> Optional[Path]:
        if self._file_handler is None:
            return None
        return Path(self._file_handler.baseFilename)

    def set_console_level(self, level: int) -> None:
        self._console_handler.setLevel(level)

    def attach_file_handler(self, log_file: Path) -> Path:
        """Write DEBUG logs to ``log_file``, replacing any previous log file."""
        log_file = Path(log_file).expanduser().resolve()
        if self.log_file == log_file:
            return log_file
        log_file.parent.mkdir(parents=True, exist_ok=True)
        if self._file_handler is not None:
            self.logger.removeHandler(self._file_handler)
            self._file_handler.close()

        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(ContextFormatter(FILE_FORMAT))
        self.logger.addHandler(handler)
        self._file_handler = handler
        return log_file

    def debug(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.error(message, *args, **kwargs)

    def exception(self, message: str, *args: Any, **kwargs: Any) -> None:
        self.logger.exception(message, *args, **kwargs)


_logger: Optional[NativeplugLogger] = None


def get_logger() -> NativeplugLogger:
    """Return the shared package logger, creating it on first use."""
    global _logger
    if _logger is None:
        _logger = NativeplugLogger()
    return _logger


__all__ = ["ContextFormatter", "NativeplugLogger", "get_logger", "LOG_LEVEL_ENV_VAR"]
