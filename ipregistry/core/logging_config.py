"""
KTTM IP Registry - Logging

One named logger (``ipregistry``) for the whole service. Development gets a
readable single-line format; production emits one JSON object per line.
Every record is stamped with the current request id so allocation retries,
queries and HTTP access lines of one request can be correlated.
"""

import json
import logging
import sys
import traceback
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ipregistry.core.config import settings


LOGGER_NAME = "ipregistry"

# Request tracing, set per request by RequestLoggingMiddleware
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    return request_id_var.get() or ""


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def generate_request_id() -> str:
    """Short random id, enough to tell concurrent requests apart in a log"""
    return uuid.uuid4().hex[:8]


# LogRecord attributes that are never copied into the JSON "extra" section
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "asctime", "request_id", "taskName"}


class RequestIdFilter(logging.Filter):
    """Stamps ``record.request_id`` so every formatter can print it"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per line for log shippers"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        )

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        return json.dumps(payload, default=str)


class RegistryLogger(logging.Logger):
    """Logger with one helper per structured event the registry emits"""

    def _event(self, level: int, event_type: str, message: str, fields: Dict[str, Any]) -> None:
        self.log(level, message, extra={"event_type": event_type, **fields})

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **fields) -> None:
        level = logging.WARNING if status_code >= 500 else logging.INFO
        self._event(level, "http_request", f"{method} {path} -> {status_code} in {duration_ms:.1f}ms", {
            "http_method": method,
            "http_path": path,
            "http_status": status_code,
            "duration_ms": round(duration_ms, 2),
            **fields,
        })

    def log_db_query(self, operation: str, table: str, duration_ms: float,
                     rows_affected: int = 0, **fields) -> None:
        self._event(logging.DEBUG, "db_query", f"{operation} {table}: {rows_affected} rows in {duration_ms:.1f}ms", {
            "db_operation": operation,
            "db_table": table,
            "rows_affected": rows_affected,
            "duration_ms": round(duration_ms, 2),
            **fields,
        })

    def log_allocation(self, record_id: str, attempt: int, outcome: str, **fields) -> None:
        """Collisions are warnings; a successful allocation is info"""
        level = logging.INFO if outcome == "allocated" else logging.WARNING
        self._event(level, "id_allocation", f"Record id {record_id} attempt {attempt}: {outcome}", {
            "record_id": record_id,
            "attempt": attempt,
            "outcome": outcome,
            **fields,
        })

    def log_error_with_context(self, error: BaseException, context: Optional[str] = None,
                               **fields) -> None:
        name = type(error).__name__
        self.log(
            logging.ERROR,
            f"{context or 'unhandled'}: {name}: {error}",
            exc_info=(type(error), error, error.__traceback__),
            extra={
                "event_type": "error",
                "error_type": name,
                "error_context": context,
                **fields,
            },
        )


def _build_formatters() -> Tuple[logging.Formatter, logging.Formatter]:
    if settings.ENVIRONMENT == "production":
        json_formatter = JSONFormatter()
        return json_formatter, json_formatter
    console = logging.Formatter("%(levelname)-8s [%(request_id)s] %(message)s")
    detailed = logging.Formatter(
        "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s %(funcName)s:%(lineno)d %(message)s"
    )
    return console, detailed


def setup_logging() -> RegistryLogger:
    """Configure the ``ipregistry`` logger from settings and return it"""
    logging.setLoggerClass(RegistryLogger)
    log = logging.getLogger(LOGGER_NAME)
    if not isinstance(log, RegistryLogger):
        # Created before setLoggerClass ran (e.g. by a third-party import)
        log.__class__ = RegistryLogger

    log.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    log.handlers.clear()
    log.filters.clear()
    log.addFilter(RequestIdFilter())

    console_formatter, file_formatter = _build_formatters()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(console_formatter)
    log.addHandler(console)

    if settings.LOG_FILE:
        path = Path(settings.LOG_FILE)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(file_formatter)
        log.addHandler(file_handler)

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return log


logger: RegistryLogger = setup_logging()


__all__ = [
    "logger",
    "setup_logging",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "RegistryLogger",
    "RequestIdFilter",
    "JSONFormatter",
]
