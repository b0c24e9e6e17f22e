"""Domain contracts for agent lifecycle intents, state, and results."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from packages.fleet_shared.errors import ErrorDetail
from resources.adapters.container_runtime import ContainerHandle
from resources.substrates.postgres import StoreCredentials, StoreEndpoint

REDACTED = "***"


class DeploymentMode(str, Enum):
    """Which source is authoritative for the agent store endpoint."""

    MANAGED = "managed"
    EXTERNAL = "external"
    LOCAL = "local"


class AgentState(str, Enum):
    """Per-agent lifecycle state tracked by the controller."""

    NOT_DEPLOYED = "not_deployed"
    PROVISIONING = "provisioning"
    RUNNING = "running"
    UPDATING = "updating"
    UNDEPLOYING = "undeploying"
    DELETED = "deleted"


class ResourceState(str, Enum):
    """Provisioning state of one per-agent store resource."""

    ABSENT = "absent"
    CREATING = "creating"
    READY = "ready"
    DELETING = "deleting"
    DELETED = "deleted"


class IntentKind(str, Enum):
    DEPLOY = "deploy"
    UPDATE = "update"
    UNDEPLOY = "undeploy"


class AgentIdentity(BaseModel):
    """Caller-supplied identity of one agent."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    namespace: str
    agent_id: str

    @property
    def runtime_id(self) -> str:
        """Identifier handed to the container runtime."""
        return f"{self.namespace}-{self.agent_id}"

    def __str__(self) -> str:
        return f"{self.namespace}/{self.agent_id}"


class AgentConfig(BaseModel):
    """Deployment payload for one agent process."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    image: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    labels: dict[str, str] = Field(default_factory=dict)


class LifecycleIntent(BaseModel):
    """One Deploy/Update/Undeploy request for one agent."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: IntentKind
    identity: AgentIdentity
    config: AgentConfig = Field(default_factory=AgentConfig)
    cleanup: bool | None = None

    @classmethod
    def deploy(
        cls, identity: AgentIdentity, config: AgentConfig | None = None
    ) -> "LifecycleIntent":
        return cls(
            kind=IntentKind.DEPLOY, identity=identity, config=config or AgentConfig()
        )

    @classmethod
    def update(
        cls, identity: AgentIdentity, config: AgentConfig | None = None
    ) -> "LifecycleIntent":
        return cls(
            kind=IntentKind.UPDATE, identity=identity, config=config or AgentConfig()
        )

    @classmethod
    def undeploy(
        cls, identity: AgentIdentity, cleanup: bool | None = None
    ) -> "LifecycleIntent":
        return cls(kind=IntentKind.UNDEPLOY, identity=identity, cleanup=cleanup)


class ConnectionDescriptor(SecretStr):
    """Store connection URL whose rendering masks the password."""

    def __init__(self, secret_value: str, *, redacted: str) -> None:
        super().__init__(secret_value)
        self._redacted = redacted

    def _display(self) -> str:
        return self._redacted


class ResolvedStore(BaseModel):
    """Endpoint and credentials selected for the configured deployment mode."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: DeploymentMode
    driver: str
    endpoint: StoreEndpoint | None = None
    admin_credentials: StoreCredentials | None = None
    app_password: SecretStr | None = None
    local_data_dir: str | None = None

    @property
    def requires_provisioning(self) -> bool:
        return self.mode is not DeploymentMode.LOCAL

    def app_credentials(self, resource_name: str) -> StoreCredentials | None:
        """Application login for one resource; the role shares its name."""
        if self.app_password is None:
            return None
        return StoreCredentials(user=resource_name, password=self.app_password)

    def connection_descriptor(self, resource_name: str) -> ConnectionDescriptor:
        """Build the descriptor handed to the agent container."""
        if self.mode is DeploymentMode.LOCAL:
            url = f"{self.driver}:///{self.local_data_dir}/{resource_name}.db"
            return ConnectionDescriptor(url, redacted=url)

        assert self.endpoint is not None and self.app_password is not None
        location = f"{self.endpoint.host}:{self.endpoint.port}/{resource_name}"
        # Percent-encoding only; URL parsers keep "+" as a literal character.
        user = quote(resource_name, safe="")
        password = quote(self.app_password.get_secret_value(), safe="")
        return ConnectionDescriptor(
            f"{self.driver}://{user}:{password}@{location}",
            redacted=f"{self.driver}://{user}:{REDACTED}@{location}",
        )


class AgentStatus(BaseModel):
    """Snapshot of one agent's lifecycle and storage state."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    identity: AgentIdentity
    state: AgentState
    resource_name: str | None
    resource_state: ResourceState
    container: ContainerHandle | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class LifecycleResult(BaseModel):
    """Outcome of one lifecycle intent.

    ``ok`` is false only for fatal failures; non-fatal problems such as a
    failed storage cleanup are reported in ``warnings``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    intent: IntentKind
    identity: AgentIdentity
    ok: bool
    state: AgentState
    resource_name: str | None = None
    resource_state: ResourceState | None = None
    errors: list[ErrorDetail] = Field(default_factory=list)
    warnings: list[ErrorDetail] = Field(default_factory=list)
