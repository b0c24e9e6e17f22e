"""Administrative store interface and its Postgres implementation.

An administrative session is a scoped acquisition: the connection it holds is
released on every exit path, whether the caller's block succeeds, raises, or is
abandoned because provisioning was cancelled.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Any, Protocol

from sqlalchemy import Connection, Engine

from packages.fleet_shared.logging import get_logger
from resources.substrates.postgres.config import PostgresAdminSettings
from resources.substrates.postgres.domain import StoreCredentials, StoreEndpoint
from resources.substrates.postgres.engine import create_admin_engine
from resources.substrates.postgres.errors import (
    is_duplicate_error,
    is_missing_error,
    normalize_postgres_error,
)
from resources.substrates.postgres.statements import (
    AdminOutcome,
    AdminStatement,
    compile_statement,
    existence_probe,
)

_LOGGER = get_logger(__name__)

EngineFactory = Callable[..., Engine]


class AdminSession(Protocol):
    """Protocol for one open administrative session."""

    def exists(self, statement: AdminStatement) -> bool:
        """Return whether the statement's target role/database already exists."""

    def execute(self, statement: AdminStatement) -> AdminOutcome:
        """Execute one statement, reporting idempotence hits as outcomes."""


class AdminStore(Protocol):
    """Protocol for opening administrative sessions against one store."""

    def session(
        self,
        credentials: StoreCredentials,
        *,
        database: str | None = None,
    ) -> AbstractContextManager[AdminSession]:
        """Open one administrative session scoped to a ``with`` block."""


class PostgresAdminStore(AdminStore):
    """Administrative store over short-lived unpooled SQLAlchemy connections."""

    def __init__(
        self,
        *,
        endpoint: StoreEndpoint,
        settings: PostgresAdminSettings,
        engine_factory: EngineFactory = create_admin_engine,
    ) -> None:
        self._endpoint = endpoint
        self._settings = settings
        self._engine_factory = engine_factory

    @property
    def endpoint(self) -> StoreEndpoint:
        return self._endpoint

    @contextmanager
    def session(
        self,
        credentials: StoreCredentials,
        *,
        database: str | None = None,
    ) -> Iterator[AdminSession]:
        """Yield a session bound to one connection, disposed on every exit path."""
        engine = self._engine_factory(
            endpoint=self._endpoint,
            credentials=credentials,
            settings=self._settings,
            database=database,
        )
        try:
            try:
                connection = engine.connect()
            except Exception as exc:
                raise normalize_postgres_error(
                    exc,
                    operation="connect",
                    privilege="LOGIN",
                    secrets=credentials.secret_values(),
                ) from exc
            try:
                yield _PostgresAdminSession(
                    connection=connection, secrets=credentials.secret_values()
                )
            finally:
                connection.close()
        finally:
            engine.dispose()


class _PostgresAdminSession(AdminSession):
    """Administrative session executing composed statements on one connection."""

    def __init__(self, *, connection: Connection, secrets: tuple[str, ...]) -> None:
        self._connection = connection
        self._secrets = secrets

    def exists(self, statement: AdminStatement) -> bool:
        probe = existence_probe(statement)
        if probe is None:
            return False
        query, params = probe
        try:
            with self._cursor() as cursor:
                cursor.execute(query, params)
                return cursor.fetchone() is not None
        except Exception as exc:
            raise self._normalize(exc, statement) from exc

    def execute(self, statement: AdminStatement) -> AdminOutcome:
        if statement.is_create and self.exists(statement):
            return AdminOutcome.ALREADY_EXISTS
        if statement.is_drop and not self.exists(statement):
            return AdminOutcome.NOT_FOUND

        try:
            with self._cursor() as cursor:
                for composed in compile_statement(statement):
                    cursor.execute(composed)
        except Exception as exc:
            # Lost a race with another session; the end state is the same.
            if statement.is_create and is_duplicate_error(exc):
                return AdminOutcome.ALREADY_EXISTS
            if statement.is_drop and is_missing_error(exc):
                return AdminOutcome.NOT_FOUND
            raise self._normalize(exc, statement) from exc
        return AdminOutcome.APPLIED

    def _cursor(self) -> Any:
        driver_connection = self._connection.connection.driver_connection
        return driver_connection.cursor()

    def _normalize(self, exc: Exception, statement: AdminStatement) -> Exception:
        _LOGGER.debug(
            "Administrative statement failed: %s on %s",
            statement.operation.value,
            statement.resource_name,
        )
        return normalize_postgres_error(
            exc,
            operation=statement.operation.value,
            privilege=statement.required_privilege,
            secrets=self._secrets
            + (
                (statement.password.get_secret_value(),)
                if statement.password is not None
                else ()
            ),
        )
