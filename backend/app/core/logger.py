# app/core/logger.py
"""
Logging setup shared by the whole backend.

Reads LOG_LEVEL / LOG_FORMAT straight from the environment so it can be
imported before Settings is constructed.
"""
from __future__ import annotations

import json
import logging
import os
from logging.config import dictConfig
from traceback import format_exception

LOGGER_NAME = "injurydesk"


class JsonFormatter(logging.Formatter):
    """Structured JSON formatter for hosted logs."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Set by CorrelationMiddleware
        for attr in ("correlation_id", "tab_id", "method", "path", "status_code", "duration_ms"):
            value = getattr(record, attr, None)
            if value is not None:
                payload[attr] = value

        if record.exc_info:
            exc_type = record.exc_info[0].__name__ if record.exc_info[0] else None
            stack = "".join(format_exception(*record.exc_info))
            max_stack = int(os.getenv("LOG_STACK_LIMIT", "4000"))
            payload["error"] = {
                "type": exc_type,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "stack": stack[:max_stack] + ("...(truncated)" if len(stack) > max_stack else ""),
            }

        return json.dumps(payload, ensure_ascii=False, default=str)


def _read_level() -> str:
    return (os.getenv("LOG_LEVEL") or "INFO").upper()


def _read_format() -> str:
    return (os.getenv("LOG_FORMAT") or "text").lower()


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    level = (level or _read_level()).upper()
    fmt = (fmt or _read_format()).lower()

    formatter = "json" if fmt == "json" else "plain"
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
                "json": {"()": JsonFormatter},
            },
            "handlers": {
                "stream": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter,
                    "level": level,
                },
            },
            "loggers": {
                LOGGER_NAME: {"handlers": ["stream"], "level": level, "propagate": False},
                "app": {"handlers": ["stream"], "level": level, "propagate": False},
                # Quiet the AWS SDK
                "botocore": {"level": "WARNING"},
                "boto3": {"level": "WARNING"},
            },
        }
    )


setup_logging()
logger = logging.getLogger(LOGGER_NAME)
