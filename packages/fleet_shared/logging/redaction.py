"""Secret registry and scrubbing for log records and error messages."""

from __future__ import annotations

import logging
from threading import Lock

from . import fields

_MIN_SECRET_LENGTH = 3

_lock = Lock()
_secrets: set[str] = set()


def register_secret(value: str | None) -> None:
    """Remember one secret value so it is masked wherever it surfaces."""
    if value is None or len(value) < _MIN_SECRET_LENGTH:
        return
    with _lock:
        _secrets.add(value)


def forget_secrets() -> None:
    """Drop every registered secret value."""
    with _lock:
        _secrets.clear()


def scrub(text: str, extra: tuple[str, ...] = ()) -> str:
    """Return ``text`` with registered and ``extra`` secret values masked."""
    with _lock:
        candidates = set(_secrets)
    candidates.update(item for item in extra if item and len(item) >= _MIN_SECRET_LENGTH)
    # Longest first so a secret containing another is masked whole.
    for secret in sorted(candidates, key=len, reverse=True):
        if secret in text:
            text = text.replace(secret, fields.REDACTED)
    return text


class SecretRedactionFilter(logging.Filter):
    """Mask registered secrets in the rendered message of each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        scrubbed = scrub(message)
        if scrubbed != message:
            record.msg = scrubbed
            record.args = None
        return True
