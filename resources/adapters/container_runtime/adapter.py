"""Transport-agnostic container runtime protocol and DTOs."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, SecretStr


class ContainerHandle(BaseModel):
    """Reference to one started agent container."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    agent_id: str
    container_id: str
    name: str
    image: str


@runtime_checkable
class ContainerRuntime(Protocol):
    """Protocol for starting and stopping agent processes."""

    def start(
        self,
        *,
        agent_id: str,
        connection_descriptor: SecretStr,
        env_overrides: Mapping[str, str],
        image: str | None = None,
        labels: Mapping[str, str] | None = None,
    ) -> ContainerHandle:
        """Start one agent wired to its store; raise ``ContainerRuntimeError``."""

    def stop(self, *, agent_id: str) -> None:
        """Stop and remove one agent; a missing agent is already stopped."""

    def find(self, *, agent_id: str) -> ContainerHandle | None:
        """Return the running container for one agent, if any."""
