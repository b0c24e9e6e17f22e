"""Structured log context carried in a ``ContextVar``.

The lifecycle controller binds the intent, agent identity and resource name
once per intent; every record emitted beneath that block carries them.
Dispatcher worker threads do not inherit the submitting thread's context, so
each intent starts from an empty mapping.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from types import MappingProxyType
from typing import Iterator, Mapping

_EMPTY: Mapping[str, str] = MappingProxyType({})
_LOG_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar(
    "fleet_log_context", default=_EMPTY
)


def _merged(values: Mapping[str, object]) -> Mapping[str, str]:
    merged = dict(_LOG_CONTEXT.get())
    merged.update(
        (str(key), str(value)) for key, value in values.items() if value is not None
    )
    return MappingProxyType(merged)


def get_context() -> dict[str, str]:
    """Return a plain copy of the current context."""
    return dict(_LOG_CONTEXT.get())


def bind_context(**values: object) -> None:
    """Add values to the current context until cleared; ``None`` is skipped."""
    if values:
        _LOG_CONTEXT.set(_merged(values))


def clear_context(*keys: str) -> None:
    """Remove the named keys, or everything when no key is given."""
    if not keys:
        _LOG_CONTEXT.set(_EMPTY)
        return
    remaining = {
        key: value for key, value in _LOG_CONTEXT.get().items() if key not in keys
    }
    _LOG_CONTEXT.set(MappingProxyType(remaining))


@contextmanager
def log_context(values: Mapping[str, object]) -> Iterator[None]:
    """Bind ``values`` for the duration of a block, restoring the outer context."""
    token = _LOG_CONTEXT.set(_merged(values))
    try:
        yield
    finally:
        _LOG_CONTEXT.reset(token)
