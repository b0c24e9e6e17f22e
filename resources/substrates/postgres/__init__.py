"""Administrative Postgres substrate primitives for per-agent resources."""

from resources.substrates.postgres.admin import (
    AdminSession,
    AdminStore,
    PostgresAdminStore,
)
from resources.substrates.postgres.component import RESOURCE_COMPONENT_ID
from resources.substrates.postgres.config import (
    PostgresAdminSettings,
    resolve_postgres_settings,
)
from resources.substrates.postgres.domain import StoreCredentials, StoreEndpoint
from resources.substrates.postgres.engine import create_admin_engine
from resources.substrates.postgres.errors import normalize_postgres_error
from resources.substrates.postgres.statements import (
    AdminOperation,
    AdminOutcome,
    AdminStatement,
)

__all__ = [
    "RESOURCE_COMPONENT_ID",
    "AdminOperation",
    "AdminOutcome",
    "AdminSession",
    "AdminStatement",
    "AdminStore",
    "PostgresAdminSettings",
    "PostgresAdminStore",
    "StoreCredentials",
    "StoreEndpoint",
    "create_admin_engine",
    "normalize_postgres_error",
    "resolve_postgres_settings",
]
