from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Iterable, Mapping

from settings import get_settings

# Record attributes promoted from ``extra=`` into the rendered line.
CONTEXT_KEYS = (
    "bin_id",
    "fill_level",
    "event_type",
    "session_count",
    "attempt",
    "state",
    "username",
    "method",
    "path",
    "reason",
)

# Chatty transport loggers kept at WARNING unless debugging.
_TRANSPORT_LOGGERS = ("websockets", "httpx", "httpcore")
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_configured = False


def _render_value(value: Any) -> str:
    text = str(value)
    if not text or any(char.isspace() for char in text):
        return repr(text)
    return text


class ContextualFormatter(logging.Formatter):
    """Appends whitelisted ``extra=`` fields as ``key=value`` pairs."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self.extra_keys = tuple(extra_keys or CONTEXT_KEYS)

    def context_of(self, record: logging.LogRecord) -> Mapping[str, Any]:
        return {
            key: value
            for key in self.extra_keys
            if (value := getattr(record, key, None)) is not None
        }

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = self.context_of(record)
        if not context:
            return message
        pairs = " ".join(f"{key}={_render_value(value)}" for key, value in context.items())
        return f"{message} | {pairs}"


def configure_logging(level: str | int | None = None) -> None:
    """Install the contextual handler on the root and uvicorn loggers once."""
    global _configured
    if _configured:
        return

    log_level = level if level is not None else get_settings().log_level
    numeric = log_level if isinstance(log_level, int) else logging.getLevelName(str(log_level))
    transport_level = log_level if numeric == logging.DEBUG else "WARNING"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": "logging_config.ContextualFormatter",
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "extra_keys": list(CONTEXT_KEYS),
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "contextual",
                }
            },
            "loggers": {
                **{
                    name: {"level": transport_level}
                    for name in _TRANSPORT_LOGGERS
                },
                **{
                    name: {"handlers": [], "propagate": True}
                    for name in _SERVER_LOGGERS
                },
            },
            "root": {"handlers": ["console"], "level": log_level},
        }
    )

    _configured = True
