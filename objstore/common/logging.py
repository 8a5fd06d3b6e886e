"""Logging setup for the service.

Records are emitted as JSON lines. Storage records (``objstore.storage``)
carry ``bucket``, ``key`` and ``code`` as top-level fields; the bucket is
stamped from settings when the call site does not name one.
"""

from __future__ import annotations

import json
import logging
from logging.config import dictConfig
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from objstore.common.config import Settings

STORAGE_LOGGER = "objstore.storage"
STORAGE_FIELDS: tuple[str, ...] = ("bucket", "key", "code")


def setup_logging(settings: "Settings") -> None:
    # dictConfig appends logger filters, it never replaces them
    storage_logger = logging.getLogger(STORAGE_LOGGER)
    for existing in list(storage_logger.filters):
        if isinstance(existing, StorageContextFilter):
            storage_logger.removeFilter(existing)

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "storage_context": {
                    "()": StorageContextFilter,
                    "bucket": settings.S3_BUCKET,
                },
            },
            "formatters": {
                "json": {
                    "()": JsonFormatter,
                },
                "plain": {
                    "format": "%(levelname)s %(name)s: %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                },
                "startup_console": {
                    "class": "logging.StreamHandler",
                    "formatter": "plain",
                },
            },
            "root": {
                "level": settings.LOG_LEVEL,
                "handlers": ["console"],
            },
            "loggers": {
                "objstore.startup": {
                    "handlers": ["startup_console"],
                    "level": "INFO",
                    "propagate": False,
                },
                STORAGE_LOGGER: {
                    "filters": ["storage_context"],
                },
            },
        }
    )


class StorageContextFilter(logging.Filter):
    """Fill in the storage fields a record is missing."""

    def __init__(self, bucket: str) -> None:
        super().__init__()
        self.bucket = bucket

    def filter(self, record: logging.LogRecord) -> bool:
        extra = getattr(record, "extra", None)
        context = dict(extra) if isinstance(extra, dict) else {}
        if not context.get("bucket"):
            context["bucket"] = self.bucket
        record.extra = context
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            for name, value in extra.items():
                # storage fields are emitted only when set
                if name in STORAGE_FIELDS and value is None:
                    continue
                payload[name] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)
