"""SQLAlchemy engine construction for administrative Postgres sessions."""

from __future__ import annotations

from sqlalchemy import URL, Engine, create_engine
from sqlalchemy.pool import NullPool

from resources.substrates.postgres.config import PostgresAdminSettings
from resources.substrates.postgres.domain import StoreCredentials, StoreEndpoint


def create_admin_engine(
    *,
    endpoint: StoreEndpoint,
    credentials: StoreCredentials,
    settings: PostgresAdminSettings,
    database: str | None = None,
) -> Engine:
    """Construct an unpooled AUTOCOMMIT engine for DDL against one database."""
    url = URL.create(
        drivername=settings.driver,
        username=credentials.user,
        password=credentials.password.get_secret_value(),
        host=endpoint.host,
        port=endpoint.port,
        database=database or settings.admin_database,
    )
    statement_timeout_ms = max(1, int(settings.statement_timeout_seconds * 1000))
    return create_engine(
        url,
        poolclass=NullPool,
        isolation_level="AUTOCOMMIT",
        hide_parameters=True,
        connect_args={
            "connect_timeout": max(1, int(settings.connect_timeout_seconds)),
            "sslmode": settings.sslmode,
            "options": f"-c statement_timeout={statement_timeout_ms}",
        },
    )
