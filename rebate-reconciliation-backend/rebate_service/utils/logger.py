"""
Centralized logging configuration.

Every module logs through ``get_logger(__name__)``; keyword arguments become
structured fields. Recovery actions are written to the ``audit`` channel via
``log_business_event`` and timings to the ``performance`` channel via
``log_performance``.
"""
import logging
import logging.config
import json
import sys
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
from pathlib import Path

ROOT_LOGGER_NAME = "rebate_service"
SERVICE_NAME = "rebate-reconciliation"

# Third-party loggers and the level they are capped at
THIRD_PARTY_LEVELS: Dict[str, str] = {
    "uvicorn": "INFO",
    "aiohttp": "WARNING",
    "sqlalchemy.engine": "WARNING",
}

class JSONFormatter(logging.Formatter):
    """One JSON object per line; structured fields are merged at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        fields = getattr(record, "fields", None)
        if fields:
            entry.update(fields)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)

class ConsoleFormatter(logging.Formatter):
    """Human-readable line with structured fields appended as key=value."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = getattr(record, "fields", None)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line

class StructuredLogger:
    """
    Thin wrapper over ``logging.Logger`` taking structured keyword fields.

    ``None`` values are dropped; ``exc_info`` goes to the underlying logger.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _emit(self, level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
        if not self.logger.isEnabledFor(level):
            return
        clean = {k: v for k, v in fields.items() if v is not None}
        self.logger.log(level, message, exc_info=exc_info, extra={"fields": clean})

    def debug(self, message: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(logging.WARNING, message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit(logging.ERROR, message, **fields)

def _logger_config(level: str, handlers: List[str]) -> Dict[str, Any]:
    return {"level": level, "handlers": list(handlers), "propagate": False}

def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True
) -> None:
    """
    Configure the service and third-party loggers with ``dictConfig``.

    Args:
        log_level: Level for the service loggers (DEBUG, INFO, WARNING, ERROR)
        log_file: Rotating JSON log file; omitted means console only
        enable_console: Plain-text console output
    """
    handlers: Dict[str, Dict[str, Any]] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "console",
            "level": log_level,
        }
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "formatter": "json",
            "level": log_level,
        }
    names = list(handlers)

    loggers = {ROOT_LOGGER_NAME: _logger_config(log_level, names)}
    for name, level in THIRD_PARTY_LEVELS.items():
        loggers[name] = _logger_config(level, names)

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSONFormatter},
            "console": {
                "()": ConsoleFormatter,
                "format": "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": log_level, "handlers": names},
    })

def get_logger(name: str) -> StructuredLogger:
    """Structured logger under the ``rebate_service`` namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return StructuredLogger(name)
    return StructuredLogger(f"{ROOT_LOGGER_NAME}.{name}")

def log_business_event(
    event_type: str,
    details: Dict[str, Any],
    client_id: Optional[str] = None,
    request_id: Optional[str] = None
) -> None:
    """
    Audit trail entry for a recovery action.

    Args:
        event_type: e.g. 'recovery_saved', 'recovery_deleted', 'batch_recovery_completed'
        details: Event-specific fields
        client_id: Dashboard client the action came from
        request_id: Request ID for tracing
    """
    get_logger("audit").info(
        f"Business event: {event_type}",
        audit=True,
        event_type=event_type,
        client_id=client_id,
        request_id=request_id,
        **details
    )

def log_performance(
    operation: str,
    duration_ms: float,
    additional_data: Optional[Dict[str, Any]] = None
) -> None:
    """Timing of a reload, batch or request."""
    get_logger("performance").info(
        f"Performance: {operation}",
        operation=operation,
        duration_ms=round(duration_ms, 2),
        **(additional_data or {})
    )
