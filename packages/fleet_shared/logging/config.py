"""Root logging setup for the lifecycle controller and the CLI.

Records carry the bound intent context as flat fields. JSON output is the
default for container log collection; the plain format leads each line with
the ``namespace/agent_id`` the record concerns. Both formatters scrub
registered credentials from the fully rendered line, exceptions included.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

from .context import bind_context, get_context
from .redaction import SecretRedactionFilter, scrub
from . import fields

# Chatty at INFO/DEBUG and not useful per intent.
_NOISY_LOGGERS = ("urllib3", "docker", "sqlalchemy.engine", "sqlalchemy.pool")


class ContextFilter(logging.Filter):
    """Attach the current intent context to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = get_context()
        record.context = context
        for key, value in context.items():
            setattr(record, key, value)
        return True


def _agent_label(context: dict[str, str]) -> str | None:
    namespace = context.get(fields.NAMESPACE)
    agent_id = context.get(fields.AGENT_ID)
    if namespace and agent_id:
        return f"{namespace}/{agent_id}"
    return None


def _context_of(record: logging.LogRecord) -> dict[str, str]:
    context = getattr(record, "context", None)
    return context if isinstance(context, dict) else {}


class JsonFormatter(logging.Formatter):
    """One JSON object per line: core fields, then the bound context."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            fields.TIMESTAMP: datetime.fromtimestamp(record.created, UTC).isoformat(),
            fields.LEVEL: record.levelname,
            fields.LOGGER: record.name,
            fields.MESSAGE: record.getMessage(),
        }
        payload.update(_context_of(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return scrub(json.dumps(payload, default=str, separators=(",", ":")))


class PlainFormatter(logging.Formatter):
    """Operator-facing lines, e.g. ``... INFO [sam/a1] Started ... intent=deploy``."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = dict(_context_of(record))
        label = _agent_label(context)
        if label is not None:
            context.pop(fields.NAMESPACE)
            context.pop(fields.AGENT_ID)
            line = line.replace(
                f"{record.levelname} ", f"{record.levelname} [{label}] ", 1
            )
        extras = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return scrub(f"{line} {extras}" if extras else line)


def configure_logging(
    *,
    level: str = "INFO",
    json_output: bool = True,
    service: str | None = None,
    environment: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Install the single root handler, replacing any earlier one.

    ``stream`` defaults to stdout; the CLI passes stderr so its own output
    stays machine-readable.
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.addFilter(SecretRedactionFilter())
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if json_output else PlainFormatter())
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    bind_context(
        **{fields.SERVICE: service or None, fields.ENVIRONMENT: environment or None}
    )


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name)
