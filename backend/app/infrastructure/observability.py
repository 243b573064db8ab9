"""Structured Logging — one JSON object per line, carrying roster context fields.

Invariants:
    - Every line has timestamp, level, logger and message
    - Roster context (error_code, email, count, path, available) appears only when set
    - setup_logging() is idempotent: calling it again replaces its own handler

Design Decisions:
    - Plain logging.Formatter subclass, configured once from the lifespan
    - LOG_FORMAT=text keeps a single-line human format for local runs
"""

import json
import logging
from datetime import datetime, timezone

_EXTRA_FIELDS = ("error_code", "email", "count", "path", "available")
_HANDLER_NAME = "roster"


class JSONFormatter(logging.Formatter):
    """Render a record and its roster context fields as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update(
            (key, record.__dict__[key])
            for key in _EXTRA_FIELDS
            if record.__dict__.get(key) is not None
        )
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
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
    return handler
