# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).

import json
import logging
import os

from enum import Enum

from rich.console import Console
from rich.logging import RichHandler


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogOutput(str, Enum):
    CONSOLE = "console"
    FILE = "file"
    BOTH = "both"


class LogFormat(str, Enum):
    TEXT = "text"
    TEXT_LIGHT = "text_light"
    JSON = "json"


TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Format records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def _make_formatter(format: LogFormat | str) -> logging.Formatter:
    if format == LogFormat.JSON:
        return JsonFormatter()

    if isinstance(format, LogFormat):
        return logging.Formatter(TEXT_FORMAT)

    return logging.Formatter(format)


def setup_logging(
    level: LogLevel | str = LogLevel.INFO,
    output: LogOutput = LogOutput.CONSOLE,
    format: LogFormat | str = LogFormat.TEXT_LIGHT,
    log_file: str | None = None,
    logger_name: str = "saverelations",
) -> logging.Logger:
    """
    Configure the package logger.

    Console output goes through rich; TEXT_LIGHT drops time and path columns.
    A custom format string is used as-is for the file handler.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level.value if isinstance(level, LogLevel) else level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if output in (LogOutput.CONSOLE, LogOutput.BOTH):
        light = format == LogFormat.TEXT_LIGHT
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_time=not light,
            show_path=not light,
            rich_tracebacks=True,
        )

        if format == LogFormat.JSON:
            console_handler.setFormatter(JsonFormatter())

        logger.addHandler(console_handler)

    if output in (LogOutput.FILE, LogOutput.BOTH) and log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(_make_formatter(format))
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


__all__ = [
    "LogLevel",
    "LogOutput",
    "LogFormat",
    "JsonFormatter",
    "setup_logging",
]
