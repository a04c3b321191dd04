"""Structured logging for the admin service.

Every record is one JSON object per line. Only whitelisted ``extra`` keys are
copied into the output, and values of credential-bearing keys are masked.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

LOGGER_NAME = "sleepplanet"

_CONTEXT_FIELDS = (
    "request_id",
    "admin_id",
    "username",
    "action",
    "path",
    "method",
    "status",
    "duration",
    "reason",
    "version",
    "log_level",
    "rate_limiting",
    "monitoring",
)

# Never written out even if a caller passes them in ``extra``.
_SECRET_FIELDS = frozenset({"password", "password_hash", "token", "jwt_secret"})
REDACTED = "***"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        for key in _SECRET_FIELDS:
            if hasattr(record, key):
                entry[key] = REDACTED

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging(log_level: str = "INFO") -> logging.Logger:
    """(Re)configure the service logger: one stdout handler, JSON lines, given level."""
    service_logger = logging.getLogger(LOGGER_NAME)
    service_logger.setLevel(log_level.upper())
    service_logger.propagate = False

    for handler in list(service_logger.handlers):
        service_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    service_logger.addHandler(handler)
    return service_logger


logger = setup_logging()
