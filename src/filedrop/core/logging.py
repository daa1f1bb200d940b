"""Logging configuration for FileDrop."""

import contextvars
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

# Storage key of the upload currently being processed in this task
storage_key_context: contextvars.ContextVar[str | None] = contextvars.ContextVar("storage_key", default=None)

_STANDARD_RECORD_FIELDS = frozenset(
    [
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName",
        "relativeCreated", "thread", "threadName", "exc_info",
        "exc_text", "stack_info", "taskName", "getMessage",
    ]
)


class JsonLogFormatter(logging.Formatter):
    """One JSON object per upload log line.

    The key of the upload in flight is added as ``storage_key`` so every
    probe, attempt and fallback line can be grouped per object. Attempt
    counters, delays and strategy names passed via ``extra`` land beside it.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        storage_key = storage_key_context.get()
        if storage_key:
            log_entry["storage_key"] = storage_key

        log_entry.update(
            (key, value) for key, value in record.__dict__.items() if key not in _STANDARD_RECORD_FIELDS
        )

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            log_entry["exception_type"] = exc_type.__name__
            log_entry["exception_message"] = str(exc_value)
            log_entry["exception"] = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def setup_logging() -> None:
    """Configure logging for the application.

    Logs go to stdout. Local development gets a readable text format at DEBUG
    level; every other environment gets JSON at ``settings.LOG_LEVEL``.
    """
    from filedrop.core.config import settings

    if settings.ENV == "local":
        log_level = logging.DEBUG
        formatter: logging.Formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    else:
        log_level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO
        formatter = JsonLogFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.setLevel(log_level)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.propagate = False

    # httpx logs every request at INFO; probes would flood the output
    logging.getLogger("httpx").setLevel(logging.WARNING)
