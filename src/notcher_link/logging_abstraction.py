"""Logging for notcher-link.

Two layers live here:

* ``NotcherLogger``: structured diagnostic logging (JSON and/or human-readable)
  with the active correlation ID stamped on every record.
* ``StatusLog``: the line-oriented status sink that operator-facing surfaces
  (a console, a GUI text pane) consume. The core only ever calls
  ``append_line``; ``LoggerStatusLog`` routes those lines into the
  ``notcher_link.status`` logger, ``MemoryStatusLog`` keeps them in a list.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol, cast, override, runtime_checkable

__all__ = [
    "HumanReadableFormatter",
    "JSONFormatter",
    "LoggerStatusLog",
    "MemoryStatusLog",
    "NotcherLogger",
    "StatusLog",
    "get_logger",
    "set_package_level",
]

STATUS_LOGGER_NAME = "notcher_link.status"


def _extra_context(record: logging.LogRecord) -> Mapping[str, object] | None:
    extra_data = getattr(record, "extra_data", None)
    if isinstance(extra_data, Mapping) and extra_data:
        return cast("Mapping[str, object]", extra_data)
    return None


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        from notcher_link.correlation import get_correlation_id

        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }
        context = _extra_context(record)
        if context:
            log_data["context"] = dict(context)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Console format: timestamp level [module:line] [corr] > message | k=v."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(correlation_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        from notcher_link.correlation import get_correlation_id

        correlation_id = get_correlation_id()
        # generated IDs may carry a prefix, the tail is what stays unique
        record.correlation_id = f"[{correlation_id[-8:]}]" if correlation_id else "[--------]"
        formatted = super().format(record)
        context = _extra_context(record)
        if context:
            formatted = f"{formatted} | " + " | ".join(f"{k}={v}" for k, v in context.items())
        return formatted


class NotcherLogger:
    """Thin wrapper over ``logging.Logger`` that accepts a structured ``extra`` mapping."""

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stdout",
    ) -> None:
        """Create the logger and attach handlers on first use of ``name``.

        Args:
            name: Logger name (usually ``__name__``)
            log_format: "json", "human" or "both"
            json_file: Destination for JSON records; JSON output is off when None
            human_output: "stdout", "stderr" or a file path

        """
        from notcher_link.const import NOTCHER_DEBUG

        self.name: str = name
        self.log_format: str = log_format
        self.logger: logging.Logger = logging.getLogger(name)
        if not self.logger.handlers:
            self.logger.setLevel(logging.DEBUG if NOTCHER_DEBUG else logging.INFO)
            self._configure_handlers(json_file, human_output)

    def _configure_handlers(self, json_file: str | Path | None, human_output: str | None) -> None:
        level = self.logger.level

        if self.log_format in ("json", "both") and json_file:
            try:
                json_path = Path(json_file)
                json_path.parent.mkdir(parents=True, exist_ok=True)
                json_handler = logging.FileHandler(json_path, mode="a")
                json_handler.setFormatter(JSONFormatter())
                json_handler.setLevel(level)
                self.logger.addHandler(json_handler)
            except OSError as e:
                print(f"Warning: Failed to create JSON log file {json_file}: {e}", file=sys.stderr)

        if self.log_format in ("human", "both"):
            output = human_output or "stdout"
            human_handler: logging.Handler
            if output == "stdout":
                human_handler = logging.StreamHandler(sys.stdout)
            elif output == "stderr":
                human_handler = logging.StreamHandler(sys.stderr)
            else:
                try:
                    human_path = Path(output)
                    human_path.parent.mkdir(parents=True, exist_ok=True)
                    human_handler = logging.FileHandler(human_path, mode="a")
                except OSError as e:
                    print(f"Warning: Failed to create human log file {output}: {e}", file=sys.stderr)
                    human_handler = logging.StreamHandler(sys.stdout)
            human_handler.setFormatter(HumanReadableFormatter())
            human_handler.setLevel(level)
            self.logger.addHandler(human_handler)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        payload = {"extra_data": dict(extra)} if extra else None
        self.logger.log(level, msg, *args, extra=payload)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> NotcherLogger:
    """Get a NotcherLogger configured from the NOTCHER_LOG_* environment.

    Args:
        name: Logger name
        log_format: Override for NOTCHER_LOG_FORMAT
        json_file: Override for NOTCHER_LOG_JSON_FILE
        human_output: Override for NOTCHER_LOG_HUMAN_OUTPUT

    Returns:
        NotcherLogger instance

    """
    from notcher_link.const import (
        NOTCHER_LOG_FORMAT,
        NOTCHER_LOG_HUMAN_OUTPUT,
        NOTCHER_LOG_JSON_FILE,
    )

    return NotcherLogger(
        name=name,
        log_format=log_format or NOTCHER_LOG_FORMAT,
        json_file=json_file or NOTCHER_LOG_JSON_FILE,
        human_output=human_output or NOTCHER_LOG_HUMAN_OUTPUT,
    )


@runtime_checkable
class StatusLog(Protocol):
    """Line-oriented sink for human-readable status lines."""

    def append_line(self, line: str) -> None: ...


class LoggerStatusLog:
    """StatusLog that forwards every line to the status logger at INFO."""

    def __init__(self, logger: NotcherLogger | None = None) -> None:
        self._logger = logger or get_logger(STATUS_LOGGER_NAME)

    def append_line(self, line: str) -> None:
        self._logger.info("%s", line)


class MemoryStatusLog:
    """StatusLog that keeps lines in memory (tests, headless runs)."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def append_line(self, line: str) -> None:
        self.lines.append(line)

    def contains(self, fragment: str) -> bool:
        return any(fragment in line for line in self.lines)


def set_package_level(level: int, package: str = "notcher_link") -> None:
    """Set ``level`` on every logger (and its handlers) under ``package``."""
    for name, candidate in logging.root.manager.loggerDict.items():
        if isinstance(candidate, logging.Logger) and (name == package or name.startswith(f"{package}.")):
            candidate.setLevel(level)
            for handler in candidate.handlers:
                handler.setLevel(level)
