"""
Loader Logger
=============

:class:`LoaderLogger` writes load progress to a Rich console handler on
stderr and, when a log file is configured, to a rotating file as plain
text or JSON lines.

Records carry the component name and the pipeline stage that was active
when they were emitted, so a log file of one load reads as a stage trace::

    2026-01-01T12:00:00+0000 | DEBUG    | mclfloader.engine | materialize | Created .text ...

References:
    - Python logging HOWTO. https://docs.python.org/3/howto/logging.html
    - Rich library. https://github.com/Textualize/rich
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

_LOG_THEME = Theme(
    {
        "log.level.debug": "dim cyan",
        "log.level.info": "bold bright_blue",
        "log.level.warning": "bold yellow",
        "log.level.error": "bold red",
    }
)

_LOGGER_PREFIX = "mclfloader"
_LOG_FILE_MAX_BYTES = 10_485_760
_LOG_FILE_BACKUPS = 5
_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(operation)s | %(message)s"


class _JSONFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, tool, stage, message."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "tool_name": getattr(record, "tool_name", None),
            "operation": getattr(record, "operation", None),
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def _console_handler(level: int) -> RichHandler:
    return RichHandler(
        level=level,
        console=Console(theme=_LOG_THEME, stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )


def _file_handler(log_file: str | Path, level: int, json_logs: bool) -> RotatingFileHandler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=_LOG_FILE_MAX_BYTES,
        backupCount=_LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    if json_logs:
        handler.setFormatter(_JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(fmt=_TEXT_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")
        )
    return handler


class LoaderLogger:
    """Logger bound to one loader component.

    Usage::

        log = LoaderLogger("mclf.engine", log_file="mclf.log", json_logs=True)
        with log.operation("materialize"):
            log.debug("Creating .text")

    Args:
        tool_name: Component name; the stdlib logger is ``mclfloader.<tool_name>``.
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Rotating log file, or ``None`` for no file output.
        json_logs: Write JSON lines instead of text to *log_file*.
        console_output: Attach the Rich stderr handler.
    """

    def __init__(
        self,
        tool_name: str,
        *,
        log_level: str = "INFO",
        log_file: str | Path | None = None,
        json_logs: bool = False,
        console_output: bool = True,
    ) -> None:
        self._tool_name = tool_name
        self._operation: str | None = None

        level = getattr(logging, log_level.upper(), logging.INFO)
        self._logger = logging.getLogger(f"{_LOGGER_PREFIX}.{tool_name}")
        self._logger.setLevel(level)
        self._logger.propagate = False
        # a second instance for the same component replaces the handlers
        self._logger.handlers.clear()

        if console_output:
            self._logger.addHandler(_console_handler(level))
        if log_file:
            self._logger.addHandler(_file_handler(log_file, level, json_logs))

    @contextmanager
    def operation(self, name: str) -> Iterator[LoaderLogger]:
        """Tag records emitted inside the block with stage *name*."""
        previous = self._operation
        self._operation = name
        try:
            yield self
        finally:
            self._operation = previous

    @contextmanager
    def timed(self, label: str) -> Iterator[None]:
        """Log at debug level how long the block took."""
        start = time.perf_counter()
        self.debug("Started: %s", label)
        try:
            yield
        finally:
            self.debug("Completed: %s (%.3f sec)", label, time.perf_counter() - start)

    def log(self, level: int, msg: str, *args: Any) -> None:
        self._logger.log(level, msg, *args, extra=self._context())

    def debug(self, msg: str, *args: Any) -> None:
        self._logger.debug(msg, *args, extra=self._context())

    def info(self, msg: str, *args: Any) -> None:
        self._logger.info(msg, *args, extra=self._context())

    def error(self, msg: str, *args: Any) -> None:
        self._logger.error(msg, *args, extra=self._context())

    def _context(self) -> dict[str, Any]:
        return {"tool_name": self._tool_name, "operation": self._operation or "-"}
