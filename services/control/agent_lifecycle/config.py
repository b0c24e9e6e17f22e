"""Pydantic settings for the Agent Lifecycle Service."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from packages.fleet_shared.config import FleetSettings, resolve_component_settings
from services.control.agent_lifecycle.component import SERVICE_COMPONENT_ID
from services.control.agent_lifecycle.domain import DeploymentMode

DEFAULT_ADMIN_USER = "agent_admin"


class ManagedStoreSettings(BaseModel):
    """Bootstrap values the internally managed store was started with."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str = "postgres"
    port: int = Field(default=5432, gt=0, lt=65536)
    admin_user: str = DEFAULT_ADMIN_USER
    admin_password: SecretStr = SecretStr("")
    app_password: SecretStr = SecretStr("")


class RetrySettings(BaseModel):
    """Bounded exponential backoff for store connectivity failures."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    attempts: int = Field(default=5, ge=1)
    base_delay_seconds: float = Field(default=0.5, ge=0)
    max_delay_seconds: float = Field(default=8.0, ge=0)
    multiplier: float = Field(default=2.0, ge=1)

    @model_validator(mode="after")
    def _validate_bounds(self) -> "RetrySettings":
        """Require the delay ceiling to be at least the first delay."""
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        return self


class AgentLifecycleSettings(BaseModel):
    """Configuration for ``components.service.agent_lifecycle``.

    ``endpoint``, ``port``, ``admin_user``, ``admin_password`` and
    ``app_password`` apply to external mode only; managed mode reads
    ``managed.*``. Completeness is checked by the mode selector so that
    placeholder values are reported by field name.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: DeploymentMode = DeploymentMode.LOCAL
    driver: str = "postgresql+psycopg"
    endpoint: str = ""
    port: int | None = Field(default=None, gt=0, lt=65536)
    admin_user: str = ""
    admin_password: SecretStr = SecretStr("")
    app_password: SecretStr = SecretStr("")
    cleanup_on_undeploy: bool = False
    local_driver: str = "sqlite"
    local_data_dir: str = "/var/lib/fleet/agents"
    max_concurrent_intents: int = Field(default=8, gt=0)
    managed: ManagedStoreSettings = Field(default_factory=ManagedStoreSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)


def resolve_agent_lifecycle_settings(settings: FleetSettings) -> AgentLifecycleSettings:
    """Resolve lifecycle settings from ``components.service.agent_lifecycle``."""
    return resolve_component_settings(
        settings=settings,
        component_id=SERVICE_COMPONENT_ID,
        model=AgentLifecycleSettings,
    )
