"""Structured Logging — JSON formatter and setup for production observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Routing fields (namespace, connection, operation_id, kind, attempt, ...) surfaced when present
    - JSON format in production, human-readable in development
    - setup_logging() is idempotent: calling it again replaces the handler it installed

Design Decisions:
    - HTTP client loggers (httpx, httpcore, hpack) pinned to WARNING: the backend SDK
      logs every PostgREST request at INFO
"""

import logging
import json
from datetime import datetime, timezone

_EXTRA_KEYS = (
    "namespace", "connection", "operation_id", "kind", "attempt",
    "error_code", "path", "pending", "elapsed_ms",
)

_NOISY_LOGGERS = ("httpx", "httpcore", "hpack")

_HANDLER_NAME = "crossapp"


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    for existing in list(logging.root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logging.root.removeHandler(existing)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
