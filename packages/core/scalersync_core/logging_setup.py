"""Structured local logging and crash hook setup."""

from __future__ import annotations

import faulthandler
import json
import logging
import logging.handlers
import sys
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import config_root


_LOGGER_NAMES = ("scalersync", "scalersync_protocol", "scalersync_core")

# Optional `extra=` keys copied into each JSON record.
_CONTEXT_FIELDS = ("event", "step", "port", "command", "crash_id")


def log_dir(directory: Path | None = None) -> Path:
    path = directory or config_root() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


class JsonFormatter(logging.Formatter):
    """One JSON object per line, tagged with the session context the record carries."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts_utc": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(
    keep_files: int = 7,
    console: bool = True,
    verbose: bool = False,
    directory: Path | None = None,
) -> logging.Logger:
    """Attach the shared file and console handlers to every package logger once."""
    logger = get_logger()
    if logger.handlers:
        return logger

    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(log_dir(directory) / "scalersync.log"),
        when="midnight",
        backupCount=max(2, keep_files),
        encoding="utf-8",
    )
    handler.setFormatter(JsonFormatter())

    stream_handler = None
    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))

    # The protocol engine logs by module name, so each package root gets the handlers.
    for name in _LOGGER_NAMES:
        pkg_logger = logging.getLogger(name)
        pkg_logger.setLevel(level)
        pkg_logger.addHandler(handler)
        if stream_handler is not None:
            pkg_logger.addHandler(stream_handler)
        if name != _LOGGER_NAMES[0]:
            pkg_logger.propagate = False

    logger.info("logging configured", extra={"event": "logging_configured"})
    return logger


def shutdown_logging() -> None:
    """Detach and close the handlers added by configure_logging."""
    closed: set[int] = set()
    for name in _LOGGER_NAMES:
        pkg_logger = logging.getLogger(name)
        for handler in list(pkg_logger.handlers):
            pkg_logger.removeHandler(handler)
            if id(handler) not in closed:
                closed.add(id(handler))
                handler.close()
        pkg_logger.propagate = True


def get_logger() -> logging.Logger:
    return logging.getLogger(_LOGGER_NAMES[0])


def install_crash_hooks(directory: Path | None = None) -> None:
    logger = get_logger()

    def _log_crash(event: str, exc_info) -> None:
        crash_id = str(uuid.uuid4())
        logger.critical(
            "%s crash_id=%s",
            event.replace("_", " "),
            crash_id,
            exc_info=exc_info,
            extra={"event": event, "crash_id": crash_id},
        )

    sys.excepthook = lambda exc_type, exc_value, exc_tb: _log_crash("uncaught_exception", (exc_type, exc_value, exc_tb))
    threading.excepthook = lambda args: _log_crash(
        "thread_exception", (args.exc_type, args.exc_value, args.exc_traceback)
    )

    fh = (log_dir(directory) / "fault.log").open("a", encoding="utf-8")
    faulthandler.enable(file=fh, all_threads=True)
    logger.info("fault handler enabled", extra={"event": "fault_handler_enabled"})
