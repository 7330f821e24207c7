"""
Structured JSON Logging.

Every component receives a :class:`StructuredLogger` through its
constructor.  Records are written as one JSON object per line to stdout
and to a size-rotated log file.

Auth flows tag their records with ``extra={"event": ...}``; the event name
is lifted to the top level of the JSON entry so the trail can be filtered
without parsing ``extra``.  Values under credential-bearing keys are
replaced before they are written.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, TextIO

REDACTED: str = "***"

ROOT_LOGGER_NAME: str = "accountgate"

# Extra keys whose values must never reach a log sink.
_SENSITIVE_KEYS: frozenset[str] = frozenset({
    "password",
    "password_confirmation",
    "password_hash",
    "token",
    "activation_token",
    "reset_token",
    "session_token",
    "secret",
})


class JSONFormatter(logging.Formatter):
    """Render a record as a single-line JSON object.

    Keys: ``timestamp`` (ISO-8601 UTC), ``level``, ``logger_name``,
    ``message``, then ``event`` when one was given, caller-supplied
    ``extra`` fields, and ``exception`` for records logged with
    ``exc_info``.
    """

    # Attribute names every LogRecord carries; anything else came from ``extra``.
    _RECORD_ATTRS: frozenset[str] = frozenset(
        vars(logging.makeLogRecord({})).keys()
    ) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger_name": record.name,
            "message": record.getMessage(),
        }

        extra = {
            key: REDACTED if key in _SENSITIVE_KEYS else str(value)
            for key, value in vars(record).items()
            if key not in self._RECORD_ATTRS
        }
        if "event" in extra:
            entry["event"] = extra["event"]
        if extra:
            entry["extra"] = extra

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False)


def _stream_handler(stream: Optional[TextIO], formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)
    return handler


def _file_handler(
    log_file: str, max_bytes: int, backup_count: int, formatter: logging.Formatter,
) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


class StructuredLogger:
    """Injectable wrapper around a named ``logging.Logger``.

    Handlers are attached only the first time a name is seen, so building
    two ``StructuredLogger`` objects with the same name shares one set of
    sinks.  An unwritable log file degrades to console-only logging.

    With ``attach_handlers=False`` the wrapper owns no sinks and hands its
    records to the parent logger; see :meth:`child`.

    Usage::

        log = StructuredLogger(name="accountgate")
        log.info("Signup accepted", extra={"event": "SIGNUP", "account_id": "..."})
    """

    DEFAULT_LOG_FILE: str = "accountgate.log"
    DEFAULT_MAX_BYTES: int = 5_242_880
    DEFAULT_BACKUP_COUNT: int = 3

    def __init__(
        self,
        name: str = ROOT_LOGGER_NAME,
        level: int = logging.INFO,
        stream: Optional[TextIO] = None,
        log_file: Optional[str] = None,
        max_bytes: Optional[int] = None,
        backup_count: Optional[int] = None,
        attach_handlers: bool = True,
    ) -> None:
        self._logger: logging.Logger = logging.getLogger(name)
        if not attach_handlers:
            self._logger.propagate = True
            return

        self._logger.setLevel(level)
        self._logger.propagate = False

        if self._logger.handlers:
            return

        formatter = JSONFormatter()
        self._logger.addHandler(_stream_handler(stream, formatter))

        target = log_file or self.DEFAULT_LOG_FILE
        try:
            self._logger.addHandler(
                _file_handler(
                    target,
                    max_bytes if max_bytes is not None else self.DEFAULT_MAX_BYTES,
                    backup_count if backup_count is not None else self.DEFAULT_BACKUP_COUNT,
                    formatter,
                )
            )
        except OSError as exc:
            self._logger.warning(
                "Log file '%s' unavailable (%s); logging to console only.", target, exc,
            )

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def child(self, suffix: str) -> "StructuredLogger":
        """Return ``<name>.<suffix>``, writing through this logger's sinks."""
        return StructuredLogger(name=f"{self._logger.name}.{suffix}", attach_handlers=False)

    def debug(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.critical(msg, *args, **kwargs)

    def exception(self, msg: str, *args: object, **kwargs: object) -> None:
        self._logger.exception(msg, *args, **kwargs)


def get_logger(name: str = ROOT_LOGGER_NAME) -> StructuredLogger:
    """Build a ``StructuredLogger`` from the process configuration.

    The configured sinks hang off the ``accountgate`` logger.  Any other
    *name* becomes a child of it, so every component shares one stream
    handler and one rotating file handler.

    Only the entry point and the service factory call this; most tests
    build ``StructuredLogger`` directly with their own stream and file.
    """
    from accountgate.config import get_config

    cfg = get_config()
    root = StructuredLogger(
        name=ROOT_LOGGER_NAME,
        level=cfg.log_level,
        log_file=cfg.LOG_FILE,
        max_bytes=cfg.LOG_MAX_BYTES,
        backup_count=cfg.LOG_BACKUP_COUNT,
    )
    if name == ROOT_LOGGER_NAME:
        return root
    return root.child(name)
