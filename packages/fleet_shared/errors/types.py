"""Error shape attached to lifecycle results and rendered by the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class ErrorCategory(str, Enum):
    """Coarse failure class; the CLI maps ``CONFIGURATION`` to its own exit code."""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    POLICY = "policy"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ErrorDetail:
    """One failure or warning on a ``LifecycleResult``.

    ``message`` is already scrubbed of registered credentials. ``retryable``
    tells an operator whether resubmitting the same intent can succeed.
    """

    code: str
    message: str
    category: ErrorCategory
    retryable: bool = False
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"
