"""The fixed set of administrative statements used for per-agent resources.

Every statement is composed with ``psycopg.sql`` identifiers and literals;
nothing here concatenates caller input into SQL text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from psycopg import sql
from pydantic import SecretStr

_IDENTIFIER_RE = re.compile(r"^[a-z][a-z0-9_]{0,62}$")


class AdminOperation(str, Enum):
    """Idempotent-safe administrative operations."""

    CREATE_ROLE = "create_role"
    CREATE_DATABASE = "create_database"
    GRANT_PRIVILEGES = "grant_privileges"
    SET_DEFAULT_PRIVILEGES = "set_default_privileges"
    DROP_DATABASE = "drop_database"
    DROP_ROLE = "drop_role"


class AdminOutcome(str, Enum):
    """Observable effect of one executed statement."""

    APPLIED = "applied"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"


REQUIRED_PRIVILEGE: dict[AdminOperation, str] = {
    AdminOperation.CREATE_ROLE: "CREATEROLE",
    AdminOperation.CREATE_DATABASE: "CREATEDB",
    AdminOperation.GRANT_PRIVILEGES: "GRANT OPTION on database",
    AdminOperation.SET_DEFAULT_PRIVILEGES: "GRANT OPTION on schema public",
    AdminOperation.DROP_DATABASE: "database ownership or CREATEDB",
    AdminOperation.DROP_ROLE: "CREATEROLE",
}

_CREATES = frozenset({AdminOperation.CREATE_ROLE, AdminOperation.CREATE_DATABASE})
_DROPS = frozenset({AdminOperation.DROP_DATABASE, AdminOperation.DROP_ROLE})


@dataclass(frozen=True)
class AdminStatement:
    """One administrative operation bound to one resource name."""

    operation: AdminOperation
    resource_name: str
    password: SecretStr | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not _IDENTIFIER_RE.match(self.resource_name):
            raise ValueError(
                f"resource name '{self.resource_name}' is not a safe identifier"
            )
        if self.operation is AdminOperation.CREATE_ROLE and self.password is None:
            raise ValueError("create_role requires a password")

    @property
    def is_create(self) -> bool:
        return self.operation in _CREATES

    @property
    def is_drop(self) -> bool:
        return self.operation in _DROPS

    @property
    def target_database(self) -> str | None:
        """Database the statement must run in; ``None`` means the admin database."""
        if self.operation is AdminOperation.SET_DEFAULT_PRIVILEGES:
            return self.resource_name
        return None

    @property
    def required_privilege(self) -> str:
        return REQUIRED_PRIVILEGE[self.operation]


def create_role(resource_name: str, password: SecretStr) -> AdminStatement:
    return AdminStatement(AdminOperation.CREATE_ROLE, resource_name, password)


def create_database(resource_name: str) -> AdminStatement:
    return AdminStatement(AdminOperation.CREATE_DATABASE, resource_name)


def grant_privileges(resource_name: str) -> AdminStatement:
    return AdminStatement(AdminOperation.GRANT_PRIVILEGES, resource_name)


def set_default_privileges(resource_name: str) -> AdminStatement:
    return AdminStatement(AdminOperation.SET_DEFAULT_PRIVILEGES, resource_name)


def drop_database(resource_name: str) -> AdminStatement:
    return AdminStatement(AdminOperation.DROP_DATABASE, resource_name)


def drop_role(resource_name: str) -> AdminStatement:
    return AdminStatement(AdminOperation.DROP_ROLE, resource_name)


def compile_statement(statement: AdminStatement) -> tuple[sql.Composed, ...]:
    """Compose the SQL for one statement.

    The role and database share the resource name.
    """
    name = sql.Identifier(statement.resource_name)
    operation = statement.operation

    if operation is AdminOperation.CREATE_ROLE:
        assert statement.password is not None
        return (
            sql.SQL("CREATE ROLE {} WITH LOGIN PASSWORD {}").format(
                name, sql.Literal(statement.password.get_secret_value())
            ),
        )
    if operation is AdminOperation.CREATE_DATABASE:
        return (sql.SQL("CREATE DATABASE {}").format(name),)
    if operation is AdminOperation.GRANT_PRIVILEGES:
        return (
            sql.SQL("GRANT ALL PRIVILEGES ON DATABASE {} TO {}").format(name, name),
        )
    if operation is AdminOperation.SET_DEFAULT_PRIVILEGES:
        return (
            sql.SQL("GRANT ALL ON SCHEMA public TO {}").format(name),
            sql.SQL(
                "ALTER DEFAULT PRIVILEGES IN SCHEMA public GRANT ALL ON TABLES TO {}"
            ).format(name),
            sql.SQL(
                "ALTER DEFAULT PRIVILEGES IN SCHEMA public GRANT ALL ON SEQUENCES TO {}"
            ).format(name),
        )
    if operation is AdminOperation.DROP_DATABASE:
        return (sql.SQL("DROP DATABASE IF EXISTS {} WITH (FORCE)").format(name),)
    if operation is AdminOperation.DROP_ROLE:
        return (sql.SQL("DROP ROLE IF EXISTS {}").format(name),)
    raise ValueError(f"unsupported admin operation: {operation}")


def existence_probe(statement: AdminStatement) -> tuple[sql.SQL, tuple[str]] | None:
    """Return a catalog query answering whether the statement's target exists."""
    if statement.operation in (AdminOperation.CREATE_ROLE, AdminOperation.DROP_ROLE):
        return (
            sql.SQL("SELECT 1 FROM pg_catalog.pg_roles WHERE rolname = %s"),
            (statement.resource_name,),
        )
    if statement.operation in (
        AdminOperation.CREATE_DATABASE,
        AdminOperation.DROP_DATABASE,
    ):
        return (
            sql.SQL("SELECT 1 FROM pg_catalog.pg_database WHERE datname = %s"),
            (statement.resource_name,),
        )
    return None
