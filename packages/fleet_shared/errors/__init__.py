"""Public shared error API for Fleet components."""

from . import codes
from .exceptions import (
    AdminPermissionError,
    ConfigurationError,
    ConnectivityError,
    ContainerRuntimeError,
    FleetError,
    ProvisioningCancelledError,
    StoreFailureError,
)
from .factories import (
    configuration_error,
    dependency_error,
    internal_error,
    not_found_error,
    policy_error,
    validation_error,
)
from .normalize import exception_to_error
from .types import ErrorCategory, ErrorDetail

__all__ = [
    "AdminPermissionError",
    "ConfigurationError",
    "ConnectivityError",
    "ContainerRuntimeError",
    "ErrorCategory",
    "ErrorDetail",
    "FleetError",
    "ProvisioningCancelledError",
    "StoreFailureError",
    "codes",
    "configuration_error",
    "dependency_error",
    "exception_to_error",
    "internal_error",
    "not_found_error",
    "policy_error",
    "validation_error",
]
