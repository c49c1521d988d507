"""Structured key=value logging for the synthesis service.

Handlers and levels are set once on the ``synthesis`` logger by
``configure_logging`` at app startup; module loggers propagate to it.
"""

import logging
import sys
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from synthesis.core.config import Settings

ROOT_LOGGER = "synthesis"

# Worksheet context, emitted in this order right after the message
CONTEXT_FIELDS = ("project_id", "observations", "harms", "criteria", "strategies")


def _format_value(value: Any) -> str:
    text = str(value)
    if not text or any(ch.isspace() for ch in text) or '"' in text:
        return '"' + text.replace('"', '\\"') + '"'
    return text


class StructuredFormatter(logging.Formatter):
    """key=value formatter; worksheet context fields come first, then any extras."""

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                fields[name] = value
        fields.update(getattr(record, "context", None) or {})

        line = " ".join(f"{key}={_format_value(value)}" for key, value in fields.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def level_for(settings: "Settings") -> int:
    """Explicit LOG_LEVEL wins; otherwise DEBUG in dev and INFO elsewhere."""
    if settings.LOG_LEVEL:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if settings.SYNTHESIS_ENV == "dev" else logging.INFO


def configure_logging(settings: "Settings") -> logging.Logger:
    """
    Attach the structured stdout handler to the package logger.

    Safe to call more than once: the handler is installed once and the level
    is refreshed from ``settings`` on every call.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        root.addHandler(handler)
    root.setLevel(level_for(settings))
    root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, msg: str, **fields: Any) -> None:
    """
    Log with structured worksheet context.

    Names in ``CONTEXT_FIELDS`` become record attributes; anything else is
    carried in ``record.context`` and appended after them.
    """
    extra: dict[str, Any] = {name: fields.pop(name) for name in CONTEXT_FIELDS if name in fields}
    extra["context"] = fields
    logger.log(level, msg, extra=extra)
