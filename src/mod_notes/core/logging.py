"""
Logging Setup

Stdout logging for the API process, the rebuild script and migrations.
Fallback decisions (embedding, lexical mode, index mirroring) are emitted
with ``extra={"event": ..., "reason": ...}``; the JSON formatter keeps
those fields as top-level keys.
"""

import json
import logging
import sys
from logging.config import dictConfig

from mod_notes.core.config import settings

# Extras attached via ``logger.warning(..., extra={...})`` that are worth emitting
STRUCTURED_FIELDS = ("event", "reason", "note_id", "mode")

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers and the level they are capped at
LIBRARY_LEVELS = {
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
    "sqlalchemy.engine": "WARNING",  # SQL echo only when debugging
    "httpx": "WARNING",  # one INFO line per Qdrant/OpenAI request otherwise
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line, carrying the structured extras when present."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in STRUCTURED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = str(value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _logger(level: str) -> dict:
    return {"level": level, "handlers": ["console"], "propagate": False}


def setup_logging() -> None:
    """
    Configure the ``mod_notes`` loggers and cap noisy libraries.

    LOG_LEVEL applies to the root and ``mod_notes`` loggers; JSON_LOGS
    switches the console handler to one JSON object per line. Safe to call
    more than once (dictConfig replaces the previous handlers).
    """
    level = settings.LOG_LEVEL.upper()

    loggers = {name: _logger(lib_level) for name, lib_level in LIBRARY_LEVELS.items()}
    loggers["mod_notes"] = _logger(level)

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "text": {"format": TEXT_FORMAT, "datefmt": TEXT_DATE_FORMAT},
                "json": {"()": JsonFormatter},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stdout,
                    "formatter": "json" if settings.JSON_LOGS else "text",
                },
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": loggers,
        }
    )
