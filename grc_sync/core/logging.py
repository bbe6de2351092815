"""
Logging setup for the sync service.

Records may carry sync context (organization, table, sync event). Handlers
installed by ``setup_logging`` fill in a placeholder for context a record
does not carry, so plain-text formats can reference ``%(org_id)s`` safely.
"""

import json
import logging
import logging.handlers
import socket
import sys
from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional, Tuple, Union

from .config import get_settings

CONTEXT_FIELDS = ("org_id", "table", "sync_event_id")
NO_CONTEXT = "-"

# Chatty third-party loggers and the level they are held at
QUIET_LOGGERS = {
    "aiosqlite": logging.WARNING,
    "httpx": logging.WARNING,
    "celery": logging.INFO,
    "redis": logging.WARNING,
    "uvicorn.access": logging.INFO,
}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, sync context included when present."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        try:
            self.hostname = socket.gethostname()
        except OSError:
            self.hostname = "unknown"

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
            "hostname": self.hostname,
            "pid": record.process,
        }

        for key in CONTEXT_FIELDS:
            value = getattr(record, key, NO_CONTEXT)
            if value != NO_CONTEXT:
                entry[key] = value

        if hasattr(record, "extra_fields"):
            entry.update(record.extra_fields)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Handler filter giving every record the sync context attributes."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key in CONTEXT_FIELDS:
            if not hasattr(record, key):
                setattr(record, key, NO_CONTEXT)
        return True


class ContextAdapter(logging.LoggerAdapter):
    """Logger bound to fixed sync context; per-call ``extra`` wins on clashes."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def setup_logging() -> None:
    """Configure the root logger from LOG_* settings. Safe to call repeatedly."""
    settings = get_settings()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.logging.level.upper(), logging.INFO))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if settings.logging.json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(fmt=settings.logging.format, datefmt="%Y-%m-%d %H:%M:%S")

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.logging.file_path:
        file_path = Path(settings.logging.file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=file_path,
                maxBytes=settings.logging.max_bytes,
                backupCount=settings.logging.backup_count,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(ContextFilter())
        root_logger.addHandler(handler)

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )


def get_logger(name: str, **context: Any) -> Union[logging.Logger, ContextAdapter]:
    """
    Get a logger, bound to sync context when any is given.

    Example:
        logger = get_logger(__name__, org_id="org-1")
        logger.info("Listener ready")
    """
    logger = logging.getLogger(name)
    if context:
        return ContextAdapter(logger, context)
    return logger


class StructuredLogger:
    """Logger whose keyword fields end up as top-level keys of JSON lines."""

    def __init__(self, name: str, **default_fields):
        self.logger = logging.getLogger(name)
        self.default_fields = default_fields

    def _log(self, level: int, message: str, **fields):
        extra_fields = {**self.default_fields, **fields}
        extra: Dict[str, Any] = {"extra_fields": extra_fields}
        if fields.get("org_id"):
            extra["org_id"] = fields["org_id"]
        self.logger.log(level, message, extra=extra)

    def info(self, message: str, **fields):
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields):
        self._log(logging.WARNING, message, **fields)


audit_logger = StructuredLogger("grc_sync.audit", event_type="audit")


def audit_log(
    action: str,
    resource: str,
    org_id: Optional[str] = None,
    user_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    success: bool = True,
):
    """
    Record an administrative action for compliance review.

    Args:
        action: Action performed (e.g., 'RESOLVE_CONFLICT', 'MANUAL_SYNC')
        resource: Resource affected (e.g., 'DATA_LINEAGE', 'SYNC_EVENT')
        org_id: Organization the action was scoped to
        user_id: Who performed the action, when known
        details: Additional details about the action
        success: Whether the action was successful
    """
    log = audit_logger.info if success else audit_logger.warning
    log(
        f"{action} on {resource}",
        action=action,
        resource=resource,
        org_id=org_id,
        user_id=user_id,
        success=success,
        details=details or {},
    )
