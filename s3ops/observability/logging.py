"""
Structured Logging for s3ops
============================

Every log call takes keyword fields; the JSON formatter turns them into
top-level keys next to the message:

    logger = StructuredLogger("s3ops.operator")
    logger.info("Bucket created", bucket="alpha", region="eu-west-1")

    {"@timestamp": "...", "level": "INFO", "logger": "s3ops.operator",
     "message": "Bucket created", "bucket": "alpha", "region": "eu-west-1"}

Fields bound with ``StructuredLogger.context(...)`` ride along on every
record emitted inside the block, including from other modules and tasks
spawned there. When a record carries an ``S3OpsError`` its code and id
are added as ``error_code`` / ``error_id``.
"""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Iterator, Optional, TextIO

from s3ops.core.errors import S3OpsError


class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40


_bound_fields: ContextVar[dict[str, Any]] = ContextVar("s3ops_log_fields", default={})

# Attributes every stdlib LogRecord carries; anything else came from `extra`.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

# Third-party loggers that flood DEBUG with request signing and pool traces.
_NOISY_LOGGERS = ("botocore", "aiobotocore", "aioboto3", "urllib3", "asyncio")


class JsonFormatter(logging.Formatter):
    """One JSON object per record: bound fields, then per-call fields."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "@timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update(_bound_fields.get())
        data.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )

        if record.exc_info:
            exc = record.exc_info[1]
            if isinstance(exc, S3OpsError):
                data["error_code"] = exc.code.name
                data["error_id"] = exc.error_id
            data["exception"] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)


class StructuredLogger:
    """Thin wrapper over a stdlib logger whose keyword arguments become fields."""

    __slots__ = ("_logger",)

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(name)

    def debug(self, message: str, **fields: Any) -> None:
        self._emit(LogLevel.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit(LogLevel.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(LogLevel.WARNING, message, fields)

    def error(self, message: str, exc_info: bool = False, **fields: Any) -> None:
        self._emit(LogLevel.ERROR, message, fields, exc_info)

    def _emit(self, level: LogLevel, message: str, fields: dict[str, Any], exc_info: bool = False) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, message, exc_info=exc_info, extra=fields)

    @staticmethod
    @contextmanager
    def context(**fields: Any) -> Iterator[None]:
        """Bind ``fields`` to every record logged inside the block."""
        token = _bound_fields.set({**_bound_fields.get(), **fields})
        try:
            yield
        finally:
            _bound_fields.reset(token)


def current_log_context() -> dict[str, Any]:
    return dict(_bound_fields.get())


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    json_output: bool = True,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Install a single root handler writing to ``stream`` (stderr by default).

    Plain-text output is meant for terminals; JSON for log shippers.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        ))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, LogLevel.WARNING))
