"""Turn any exception raised during an intent into an ``ErrorDetail``."""

from __future__ import annotations

from typing import Callable

from . import codes
from .exceptions import FleetError
from .factories import (
    dependency_error,
    internal_error,
    not_found_error,
    policy_error,
    validation_error,
)
from .types import ErrorDetail

_Factory = Callable[[str, dict[str, str]], ErrorDetail]

# First match wins; TimeoutError must precede its OSError siblings.
_BUILTIN_MAPPINGS: tuple[tuple[type[BaseException], _Factory], ...] = (
    (
        PermissionError,
        lambda message, meta: policy_error(message, metadata=meta),
    ),
    (
        TimeoutError,
        lambda message, meta: dependency_error(
            message or "dependency timed out",
            code=codes.DEPENDENCY_TIMEOUT,
            metadata=meta,
        ),
    ),
    (
        ConnectionError,
        lambda message, meta: dependency_error(
            message or "dependency unavailable",
            code=codes.DEPENDENCY_UNAVAILABLE,
            metadata=meta,
        ),
    ),
    (
        KeyError,
        lambda message, meta: not_found_error(message, metadata=meta),
    ),
    (
        ValueError,
        lambda message, meta: validation_error(
            message, code=codes.INVALID_ARGUMENT, metadata=meta
        ),
    ),
)


def exception_to_error(exc: Exception) -> ErrorDetail:
    """Normalize one exception.

    Fleet exceptions know their own code and category. Driver or runtime
    exceptions that escaped normalization are classified by builtin base type,
    keeping the type name in metadata for operators.
    """
    if isinstance(exc, FleetError):
        return exc.to_error()

    metadata = {"exception_type": type(exc).__name__}
    for exc_type, factory in _BUILTIN_MAPPINGS:
        if isinstance(exc, exc_type):
            return factory(str(exc), metadata)
    return internal_error(
        str(exc) or "unexpected exception",
        code=codes.UNEXPECTED_EXCEPTION,
        metadata=metadata,
    )
