"""Invocation/completion logging for public lifecycle operations.

``public_api_logged`` wraps one public method. Before the call it logs an
invocation record naming the component, operation and identifying arguments;
afterwards a completion record with success, duration, error and warning
summaries, and the resulting agent state when the result carries one. A
completion with errors or warnings is logged at WARNING.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from time import perf_counter
from typing import Any, Callable, Mapping

from . import fields
from .context import log_context


@dataclass(frozen=True)
class _Invocation:
    component_id: str
    api_name: str
    references: Mapping[str, str] = field(default_factory=dict)
    started: float = field(default_factory=perf_counter)

    def log_fields(self, event: str) -> dict[str, object]:
        return {
            fields.EVENT: event,
            fields.COMPONENT_ID: self.component_id,
            fields.API_NAME: self.api_name,
            **self.references,
        }

    def elapsed_ms(self) -> float:
        return round((perf_counter() - self.started) * 1000.0, 3)


def public_api_logged(
    *,
    logger: Any,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Log invocation and completion of one public method.

    ``id_fields`` names keyword arguments copied into both records, e.g.
    ``("identity",)`` for lifecycle intents.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        name = api_name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            invocation = _Invocation(
                component_id=component_id,
                api_name=name,
                references={
                    key: str(kwargs[key])
                    for key in id_fields
                    if kwargs.get(key) not in (None, "")
                },
            )
            with log_context(invocation.log_fields(fields.PUBLIC_API_INVOCATION_EVENT)):
                logger.info("Public API invocation")

            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _log_completion(
                    logger,
                    invocation,
                    success=False,
                    errors=[f"{type(exc).__name__}: {exc}"],
                )
                raise

            errors = _summaries(getattr(result, "errors", None))
            ok = getattr(result, "ok", None)
            _log_completion(
                logger,
                invocation,
                success=ok if isinstance(ok, bool) else not errors,
                errors=errors,
                warnings=_summaries(getattr(result, "warnings", None)),
                state=getattr(result, "state", None),
            )
            return result

        return wrapper

    return decorator


def _log_completion(
    logger: Any,
    invocation: _Invocation,
    *,
    success: bool,
    errors: list[str],
    warnings: list[str] | None = None,
    state: object = None,
) -> None:
    payload = invocation.log_fields(fields.PUBLIC_API_COMPLETION_EVENT)
    payload.update(
        {
            fields.SUCCESS: success,
            fields.DURATION_MS: invocation.elapsed_ms(),
            fields.ERRORS: errors,
            fields.WARNINGS: warnings or [],
        }
    )
    if isinstance(state, Enum):
        payload[fields.STATE] = state.value
    with log_context(payload):
        if success and not warnings:
            logger.info("Public API completion")
        else:
            logger.warning("Public API completion")


def _summaries(items: object) -> list[str]:
    """Render ``ErrorDetail``-like items as ``CODE: message`` lines."""
    if not isinstance(items, (list, tuple)):
        return []
    lines: list[str] = []
    for item in items:
        code, message = _field(item, "code"), _field(item, "message")
        if message in (None, ""):
            continue
        lines.append(f"{code}: {message}" if code else str(message))
    return lines


def _field(item: object, key: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(key)
    return getattr(item, key, None)
