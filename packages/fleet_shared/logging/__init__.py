"""Structured logging for Fleet: stdlib ``logging`` plus intent context and secret scrubbing."""

from . import fields
from .config import configure_logging, get_logger
from .context import bind_context, clear_context, get_context, log_context
from .public_api import public_api_logged
from .redaction import SecretRedactionFilter, forget_secrets, register_secret, scrub

__all__ = [
    "SecretRedactionFilter",
    "bind_context",
    "clear_context",
    "configure_logging",
    "fields",
    "forget_secrets",
    "get_context",
    "get_logger",
    "log_context",
    "public_api_logged",
    "register_secret",
    "scrub",
]
