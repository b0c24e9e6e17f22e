"""Builders for ``ErrorDetail`` values, one per category.

Every message passes through the secret scrubber, so a driver message that
echoes a connection string cannot leak a password into a result.
"""

from __future__ import annotations

from typing import Mapping

from ..logging.redaction import scrub
from . import codes
from .types import ErrorCategory, ErrorDetail


def _detail(
    category: ErrorCategory,
    message: str,
    code: str,
    metadata: Mapping[str, str] | None,
    *,
    retryable: bool = False,
) -> ErrorDetail:
    return ErrorDetail(
        code=code,
        message=scrub(message),
        category=category,
        retryable=retryable,
        metadata={key: scrub(str(value)) for key, value in (metadata or {}).items()},
    )


def configuration_error(
    message: str,
    *,
    code: str = codes.CONFIGURATION_ERROR,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """Settings are missing, placeholders, or otherwise unusable."""
    return _detail(ErrorCategory.CONFIGURATION, message, code, metadata)


def validation_error(
    message: str,
    *,
    code: str = codes.VALIDATION_ERROR,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    return _detail(ErrorCategory.VALIDATION, message, code, metadata)


def not_found_error(
    message: str,
    *,
    code: str = codes.NOT_FOUND,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """The intent targets an agent in the wrong state, e.g. updating a stopped one."""
    return _detail(ErrorCategory.NOT_FOUND, message, code, metadata)


def policy_error(
    message: str,
    *,
    code: str = codes.PERMISSION_DENIED,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """The administrative user lacks a privilege such as CREATEROLE."""
    return _detail(ErrorCategory.POLICY, message, code, metadata)


def dependency_error(
    message: str,
    *,
    code: str = codes.DEPENDENCY_FAILURE,
    retryable: bool = True,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    """The store or the container engine failed or was unreachable."""
    return _detail(
        ErrorCategory.DEPENDENCY, message, code, metadata, retryable=retryable
    )


def internal_error(
    message: str,
    *,
    code: str = codes.INTERNAL_ERROR,
    metadata: Mapping[str, str] | None = None,
) -> ErrorDetail:
    return _detail(ErrorCategory.INTERNAL, message, code, metadata)
