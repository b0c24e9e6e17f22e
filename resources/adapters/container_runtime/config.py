"""Pydantic settings for the container runtime adapter resource."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from packages.fleet_shared.config import FleetSettings, resolve_component_settings
from resources.adapters.container_runtime.component import RESOURCE_COMPONENT_ID

_DOCKER_SOCKET_URL = "unix:///var/run/docker.sock"


class ContainerRuntimeSettings(BaseModel):
    """Runtime settings for starting and stopping agent containers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    engine: Literal["docker", "podman"] = "docker"
    base_url: str = ""
    image: str = ""
    container_name_prefix: str = "fleet-agent"
    label_prefix: str = "fleet"
    network: str | None = None
    descriptor_env_var: str = "AGENT_DATABASE_URL"
    stop_timeout_seconds: int = Field(default=10, ge=0)
    request_timeout_seconds: int = Field(default=60, gt=0)

    @field_validator("container_name_prefix", "label_prefix", "descriptor_env_var")
    @classmethod
    def _require_non_empty(cls, value: str) -> str:
        """Reject blank naming values used to address containers."""
        normalized = value.strip()
        if normalized == "":
            raise ValueError("value must be non-empty")
        return normalized


def resolve_container_runtime_settings(
    settings: FleetSettings,
) -> ContainerRuntimeSettings:
    """Resolve adapter settings from ``components.adapter.container_runtime``."""
    return resolve_component_settings(
        settings=settings,
        component_id=RESOURCE_COMPONENT_ID,
        model=ContainerRuntimeSettings,
    )


def resolve_base_url(
    settings: ContainerRuntimeSettings, *, environ: Mapping[str, str]
) -> str:
    """Return the engine API socket URL, locating rootless podman when needed."""
    if settings.base_url.strip():
        return settings.base_url.strip()
    if settings.engine == "podman":
        runtime_dir = environ.get("XDG_RUNTIME_DIR", "").strip()
        if runtime_dir:
            return f"unix://{runtime_dir}/podman/podman.sock"
        return "unix:///run/podman/podman.sock"
    return _DOCKER_SOCKET_URL
