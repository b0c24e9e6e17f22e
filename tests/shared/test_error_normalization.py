"""Tests for shared error taxonomy and exception normalization."""

from __future__ import annotations

from packages.fleet_shared.errors import (
    AdminPermissionError,
    ConfigurationError,
    ConnectivityError,
    ContainerRuntimeError,
    ErrorCategory,
    ProvisioningCancelledError,
    codes,
    exception_to_error,
)
from packages.fleet_shared.logging import register_secret


def test_configuration_error_carries_field_and_is_value_error() -> None:
    """Configuration errors are ValueErrors naming the offending field."""
    exc = ConfigurationError("endpoint missing", field="endpoint")

    error = exc.to_error()

    assert isinstance(exc, ValueError)
    assert error.category is ErrorCategory.CONFIGURATION
    assert error.code == codes.CONFIGURATION_ERROR
    assert error.metadata == {"field": "endpoint"}
    assert error.retryable is False


def test_connectivity_error_is_retryable_dependency_error() -> None:
    """Connectivity failures are retryable ConnectionErrors."""
    exc = ConnectivityError("store unreachable")

    assert isinstance(exc, ConnectionError)
    assert exc.to_error().retryable is True
    assert exc.to_error().category is ErrorCategory.DEPENDENCY


def test_permission_error_names_privilege() -> None:
    """Admin permission errors are PermissionErrors with policy category."""
    exc = AdminPermissionError("denied", privilege="CREATEDB")

    error = exc.to_error()

    assert isinstance(exc, PermissionError)
    assert error.category is ErrorCategory.POLICY
    assert error.metadata["privilege"] == "CREATEDB"


def test_runtime_and_cancel_errors_have_stable_codes() -> None:
    """Runtime and cancellation errors map to their own codes."""
    assert isinstance(ContainerRuntimeError("x"), RuntimeError)
    assert ContainerRuntimeError("x").to_error().code == codes.CONTAINER_RUNTIME_FAILURE
    cancelled = ProvisioningCancelledError("stop").to_error()
    assert cancelled.code == codes.CANCELLED
    assert cancelled.category is ErrorCategory.CONFLICT


def test_builtin_exceptions_fall_back_to_conservative_mapping() -> None:
    """Non-Fleet exceptions are normalized by builtin type."""
    assert exception_to_error(TimeoutError()).code == codes.DEPENDENCY_TIMEOUT
    assert exception_to_error(KeyError("k")).category is ErrorCategory.NOT_FOUND
    unexpected = exception_to_error(ZeroDivisionError("boom"))
    assert unexpected.code == codes.UNEXPECTED_EXCEPTION
    assert unexpected.metadata["exception_type"] == "ZeroDivisionError"


def test_error_details_never_carry_registered_secrets() -> None:
    """Driver messages echoing a registered password are masked in the detail."""
    register_secret("s3cret-app-pw")

    detail = exception_to_error(
        ConnectionError("could not connect as sam_a1_agent:s3cret-app-pw@db")
    )

    assert "s3cret-app-pw" not in detail.message
    assert "sam_a1_agent" in detail.message
    assert str(detail).startswith(f"{codes.DEPENDENCY_UNAVAILABLE}: ")
