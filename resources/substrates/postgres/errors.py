"""Postgres/SQLAlchemy exception normalization helpers."""

from __future__ import annotations

from psycopg import OperationalError as PsycopgOperationalError
from psycopg import errors as pg_errors
from sqlalchemy import exc as sa_exc

from packages.fleet_shared.errors import (
    AdminPermissionError,
    ConnectivityError,
    FleetError,
    StoreFailureError,
)
from packages.fleet_shared.logging import scrub

_AUTH_REJECTED_MARKERS = (
    "password authentication failed",
    "no pg_hba.conf entry",
)


def driver_error(exc: BaseException) -> BaseException:
    """Return the DBAPI exception wrapped by SQLAlchemy, or ``exc`` itself."""
    if isinstance(exc, sa_exc.DBAPIError) and exc.orig is not None:
        return exc.orig
    return exc


def is_duplicate_error(exc: BaseException) -> bool:
    """Return whether the failure reports an object that already exists."""
    orig = driver_error(exc)
    return isinstance(orig, (pg_errors.DuplicateObject, pg_errors.DuplicateDatabase))


def is_missing_error(exc: BaseException) -> bool:
    """Return whether the failure reports an object that does not exist."""
    orig = driver_error(exc)
    return isinstance(orig, (pg_errors.UndefinedObject, pg_errors.InvalidCatalogName))


def normalize_postgres_error(
    exc: BaseException,
    *,
    operation: str,
    privilege: str,
    secrets: tuple[str, ...] = (),
) -> FleetError:
    """Map low-level DB exceptions into the shared provisioning taxonomy."""
    orig = driver_error(exc)
    exc_type_name = type(orig).__name__
    detail = scrub(_first_line(orig) or exc_type_name, secrets)
    metadata = {"exception_type": exc_type_name, "operation": operation}

    if isinstance(orig, pg_errors.InsufficientPrivilege):
        return AdminPermissionError(
            f"{operation} requires {privilege}: {detail}",
            privilege=privilege,
            metadata=metadata,
        )

    if isinstance(orig, pg_errors.InvalidAuthorizationSpecification) or (
        isinstance(orig, PsycopgOperationalError)
        and any(marker in detail for marker in _AUTH_REJECTED_MARKERS)
    ):
        return AdminPermissionError(
            f"{operation} rejected administrative login: {detail}",
            privilege="LOGIN",
            metadata=metadata,
        )

    if isinstance(orig, (PsycopgOperationalError, TimeoutError, ConnectionError)):
        return ConnectivityError(
            f"postgres unavailable during {operation}: {detail}",
            metadata=metadata,
        )
    if isinstance(exc, (sa_exc.OperationalError, sa_exc.InterfaceError)):
        return ConnectivityError(
            f"postgres unavailable during {operation}: {detail}",
            metadata=metadata,
        )
    if "timeout" in detail.lower():
        return ConnectivityError(
            f"postgres timed out during {operation}: {detail}",
            metadata=metadata,
        )

    return StoreFailureError(
        f"unexpected postgres failure during {operation}: {detail}",
        metadata=metadata,
    )


def _first_line(exc: BaseException) -> str:
    text = str(exc).strip()
    if not text:
        return ""
    return text.splitlines()[0]
