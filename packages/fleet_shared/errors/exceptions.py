"""Typed exceptions raised across Fleet component boundaries.

Each exception subclasses the closest builtin so generic handlers keep working,
and converts itself into a shared ``ErrorDetail`` for lifecycle results.
Messages must never carry credential values; callers scrub before raising.
"""

from __future__ import annotations

from typing import Mapping

from . import codes
from .factories import (
    configuration_error,
    dependency_error,
    policy_error,
)
from .types import ErrorCategory, ErrorDetail


class FleetError(Exception):
    """Base class for errors with a stable shared error representation."""

    code: str = codes.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.metadata: dict[str, str] = dict(metadata or {})

    def to_error(self) -> ErrorDetail:
        """Return the shared error representation for this exception."""
        raise NotImplementedError


class ConfigurationError(FleetError, ValueError):
    """Required configuration is missing, malformed, or still a placeholder."""

    code = codes.CONFIGURATION_ERROR

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        code: str | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        merged = dict(metadata or {})
        if field is not None:
            merged["field"] = field
        super().__init__(message, code=code, metadata=merged)
        self.field = field

    def to_error(self) -> ErrorDetail:
        return configuration_error(self.message, code=self.code, metadata=self.metadata)


class ConnectivityError(FleetError, ConnectionError):
    """The backing store could not be reached; eligible for bounded retry."""

    code = codes.DEPENDENCY_UNAVAILABLE

    def to_error(self) -> ErrorDetail:
        return dependency_error(
            self.message,
            code=self.code,
            retryable=True,
            metadata=self.metadata,
        )


class AdminPermissionError(FleetError, PermissionError):
    """Administrative credentials lack a privilege required for provisioning."""

    code = codes.PERMISSION_DENIED

    def __init__(
        self,
        message: str,
        *,
        privilege: str,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        merged = dict(metadata or {})
        merged["privilege"] = privilege
        super().__init__(message, metadata=merged)
        self.privilege = privilege

    def to_error(self) -> ErrorDetail:
        return policy_error(self.message, code=self.code, metadata=self.metadata)


class ContainerRuntimeError(FleetError, RuntimeError):
    """The container runtime failed to start or stop an agent."""

    code = codes.CONTAINER_RUNTIME_FAILURE

    def to_error(self) -> ErrorDetail:
        return dependency_error(
            self.message,
            code=self.code,
            retryable=False,
            metadata=self.metadata,
        )


class ProvisioningCancelledError(FleetError):
    """A provisioning sequence stopped early because its caller cancelled it."""

    code = codes.CANCELLED

    def to_error(self) -> ErrorDetail:
        return ErrorDetail(
            code=self.code,
            message=self.message,
            category=ErrorCategory.CONFLICT,
            retryable=True,
            metadata=self.metadata,
        )


class StoreFailureError(FleetError):
    """The store rejected a statement for a reason outside the known taxonomy."""

    code = codes.DEPENDENCY_FAILURE

    def to_error(self) -> ErrorDetail:
        return dependency_error(
            self.message,
            code=self.code,
            retryable=False,
            metadata=self.metadata,
        )
