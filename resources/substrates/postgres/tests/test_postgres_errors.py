"""Tests for Postgres error normalization."""

from __future__ import annotations

import psycopg
from psycopg import errors as pg_errors
from sqlalchemy import exc as sa_exc

from packages.fleet_shared.errors import (
    AdminPermissionError,
    ConnectivityError,
    StoreFailureError,
)
from resources.substrates.postgres.errors import (
    is_duplicate_error,
    is_missing_error,
    normalize_postgres_error,
)


def test_wrapped_insufficient_privilege_is_permission_error() -> None:
    """SQLAlchemy-wrapped privilege errors are unwrapped and mapped."""
    wrapped = sa_exc.ProgrammingError(
        "CREATE DATABASE", None, pg_errors.InsufficientPrivilege("permission denied")
    )

    error = normalize_postgres_error(
        wrapped, operation="create_database", privilege="CREATEDB"
    )

    assert isinstance(error, AdminPermissionError)
    assert error.privilege == "CREATEDB"
    assert error.metadata["exception_type"] == "InsufficientPrivilege"


def test_rejected_login_is_permission_error_without_password() -> None:
    """Authentication failures name LOGIN and scrub the secret."""
    error = normalize_postgres_error(
        psycopg.OperationalError(
            'password authentication failed for user "fleet_admin" (pw=hunter22)'
        ),
        operation="connect",
        privilege="LOGIN",
        secrets=("hunter22",),
    )

    assert isinstance(error, AdminPermissionError)
    assert error.privilege == "LOGIN"
    assert "hunter22" not in error.message


def test_unreachable_server_is_connectivity_error() -> None:
    """Refused connections and timeouts are retryable connectivity errors."""
    refused = normalize_postgres_error(
        psycopg.OperationalError("connection refused"),
        operation="connect",
        privilege="LOGIN",
    )
    timed_out = normalize_postgres_error(
        TimeoutError(), operation="create_role", privilege="CREATEROLE"
    )

    assert isinstance(refused, ConnectivityError)
    assert isinstance(timed_out, ConnectivityError)
    assert refused.to_error().retryable is True


def test_unknown_failure_is_store_failure() -> None:
    """Other driver errors are non-retryable store failures."""
    error = normalize_postgres_error(
        pg_errors.SyntaxError("syntax error"),
        operation="grant_privileges",
        privilege="GRANT OPTION on database",
    )

    assert isinstance(error, StoreFailureError)
    assert error.to_error().retryable is False


def test_duplicate_and_missing_detection() -> None:
    """Idempotence helpers recognize create/drop race errors."""
    assert is_duplicate_error(pg_errors.DuplicateObject("role exists"))
    assert is_missing_error(pg_errors.UndefinedObject("role missing"))
    assert not is_duplicate_error(pg_errors.UndefinedObject("role missing"))
