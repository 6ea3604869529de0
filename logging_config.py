"""Logging setup for the batch job.

Log calls pass run context (paths, worker slices, counters) through
``extra=``; the formatter renders the known keys after the message.
"""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Iterable, Sequence

from settings import get_settings

_DEFAULT_EXTRA_KEYS = (
    "input_path",
    "output_path",
    "row_number",
    "reason",
    "worker",
    "worker_count",
    "slice_start",
    "slice_end",
    "record_count",
    "group_count",
    "row_count",
    "processing_ms",
    "status",
)

_configured = False


class ContextualFormatter(logging.Formatter):
    """Appends ``key=value`` pairs for the configured ``extra`` keys that are set."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or _DEFAULT_EXTRA_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={getattr(record, key)}"
            for key in self._extra_keys
            if getattr(record, key, None) is not None
        )
        return f"{message} | {context}" if context else message


def configure_logging(level: str | int | None = None) -> None:
    """Install the stderr handler once per process.

    ``level`` wins over ``LOG_LEVEL``; later calls are no-ops.
    """
    global _configured
    if _configured:
        return

    settings = get_settings()
    log_level = level if level is not None else settings.log_level

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(threadName)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "style": "%",
                    "extra_keys": list(_DEFAULT_EXTRA_KEYS),
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "contextual",
                }
            },
            "root": {"handlers": ["default"], "level": log_level},
        }
    )

    _configured = True
