import json
import logging
import os
from logging.config import dictConfig

STORAGE_LOGGER = "storage"


def setup_logging(level: str | None = None, *, json_output: bool = True) -> None:
    """Route storage logs to stderr.

    ``level`` defaults to the OBJSTORE_LOG_LEVEL environment variable, then
    INFO. Structured fields passed as ``extra={"extra": {...}}`` end up as
    top-level keys of the JSON payload.
    """
    resolved_level = (level or os.environ.get("OBJSTORE_LOG_LEVEL") or "INFO").upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": JsonFormatter,
                },
                "plain": {
                    "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_output else "plain",
                },
            },
            "root": {
                "level": "WARNING",
                "handlers": ["console"],
            },
            "loggers": {
                STORAGE_LOGGER: {
                    "level": resolved_level,
                },
                # botocore logs request signing details at DEBUG
                "botocore": {
                    "level": "WARNING",
                },
            },
        }
    )


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            payload.update(record.extra)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)
