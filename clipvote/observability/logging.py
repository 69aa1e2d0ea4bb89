"""Structured logging configuration.

Records are emitted as one JSON object per line. Scoped fields such as the
queue name or the worker run id are attached through ``LogContext``; they live
in a context variable so concurrent worker loops in one process do not see each
other's fields.
"""

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from clipvote.core.config import settings

SERVICE_NAME = "clipvote"

# Third-party loggers that are too verbose below WARNING
QUIET_LOGGERS = ("redis", "sqlalchemy.engine", "uvicorn.access", "asyncio")

_log_context: ContextVar[Dict[str, Any]] = ContextVar("clipvote_log_context", default={})


class ClipVoteJsonFormatter(jsonlogger.JsonFormatter):
    """Adds service, level, logger and source location to each record."""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.update(
            timestamp=datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            level=record.levelname,
            logger=record.name,
            service=SERVICE_NAME,
            file=f"{record.pathname}:{record.lineno}",
        )
        for key in ("asctime", "levelname", "name"):
            log_record.pop(key, None)


class ContextFilter(logging.Filter):
    """Copies the active ``LogContext`` fields onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def _formatter(format_type: str) -> logging.Formatter:
    if format_type.lower() == "json":
        return ClipVoteJsonFormatter("%(timestamp)s %(level)s %(logger)s %(message)s")
    return logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")


def setup_logging(level: Optional[str] = None, format_type: Optional[str] = None) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level name, defaults to ``LOG_LEVEL``
        format_type: ``json`` or ``text``, defaults to ``LOG_FORMAT``
    """
    level_no = logging.getLevelName((level or settings.LOG_LEVEL).upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level_no)
    handler.addFilter(ContextFilter())
    handler.setFormatter(_formatter(format_type or settings.LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level_no)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """Scoped structured fields.

    Example:
        with LogContext(queue="vote_queue", run_id="vote-1700000000000"):
            logger.info("batch claimed")
    """

    def __init__(self, **fields):
        self.fields = fields
        self._token = None

    def __enter__(self):
        self._token = _log_context.set({**_log_context.get(), **self.fields})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _log_context.reset(self._token)
        return False


def log_event(
    logger: logging.Logger,
    level: int,
    message: str,
    event_id: Optional[str] = None,
    **extra,
) -> None:
    """Log ``message`` with ``extra`` as structured fields."""
    if event_id:
        extra["event_id"] = event_id
    logger.log(level, message, extra=extra)


def log_queue_op(
    logger: logging.Logger,
    queue: str,
    operation: str,
    level: int = logging.INFO,
    **extra,
) -> None:
    """
    Log a queue segment transition (claimed, acknowledged, dead_lettered...).

    Args:
        logger: Logger instance
        queue: Queue name
        operation: Transition name, also used as the message suffix
        level: Log level
        **extra: Counts, attempts, errors
    """
    log_event(logger, level, f"{queue} {operation}", queue=queue, operation=operation, **extra)
