"""Configuration model for administrative Postgres access."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from packages.fleet_shared.config import FleetSettings, resolve_component_settings
from resources.substrates.postgres.component import RESOURCE_COMPONENT_ID


class PostgresAdminSettings(BaseModel):
    """Runtime settings for short-lived administrative Postgres sessions."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    driver: str = "postgresql+psycopg"
    admin_database: str = "postgres"
    connect_timeout_seconds: float = Field(default=10.0, gt=0)
    statement_timeout_seconds: float = Field(default=30.0, gt=0)
    sslmode: Literal[
        "disable", "allow", "prefer", "require", "verify-ca", "verify-full"
    ] = "prefer"


def resolve_postgres_settings(settings: FleetSettings) -> PostgresAdminSettings:
    """Resolve admin settings from ``components.substrate.postgres``."""
    return resolve_component_settings(
        settings=settings,
        component_id=RESOURCE_COMPONENT_ID,
        model=PostgresAdminSettings,
    )
