"""Docker/Podman-backed container runtime using the Docker Engine SDK."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import docker
from docker.errors import DockerException, ImageNotFound, NotFound
from pydantic import SecretStr

from packages.fleet_shared.errors import ContainerRuntimeError
from packages.fleet_shared.logging import get_logger, scrub
from resources.adapters.container_runtime.adapter import (
    ContainerHandle,
    ContainerRuntime,
)
from resources.adapters.container_runtime.config import ContainerRuntimeSettings

_LOGGER = get_logger(__name__)


class DockerContainerRuntime(ContainerRuntime):
    """Run each agent as one labelled container named after its identity."""

    def __init__(
        self,
        *,
        settings: ContainerRuntimeSettings,
        client: Any,
    ) -> None:
        self._settings = settings
        self._docker = client

    @classmethod
    def connect(
        cls, *, settings: ContainerRuntimeSettings, base_url: str
    ) -> "DockerContainerRuntime":
        """Build a runtime bound to one engine API socket."""
        try:
            client = docker.DockerClient(
                base_url=base_url,
                timeout=settings.request_timeout_seconds,
            )
        except DockerException as exc:
            raise ContainerRuntimeError(
                f"{settings.engine} engine unavailable at {base_url}: {exc}"
            ) from exc
        return cls(settings=settings, client=client)

    def container_name(self, agent_id: str) -> str:
        return f"{self._settings.container_name_prefix}-{agent_id}"

    def start(
        self,
        *,
        agent_id: str,
        connection_descriptor: SecretStr,
        env_overrides: Mapping[str, str],
        image: str | None = None,
        labels: Mapping[str, str] | None = None,
    ) -> ContainerHandle:
        resolved_image = (image or self._settings.image).strip()
        if resolved_image == "":
            raise ContainerRuntimeError(
                f"no image configured for agent {agent_id}",
                metadata={"agent_id": agent_id},
            )
        name = self.container_name(agent_id)
        descriptor = connection_descriptor.get_secret_value()
        environment = {
            **dict(env_overrides),
            self._settings.descriptor_env_var: descriptor,
        }
        prefix = self._settings.label_prefix
        container_labels = {
            **dict(labels or {}),
            f"{prefix}.agent": "true",
            f"{prefix}.agent.id": agent_id,
            f"{prefix}.created_at": datetime.now(UTC).isoformat(),
        }

        try:
            self._remove_if_present(name)
            container = self._docker.containers.run(
                image=resolved_image,
                name=name,
                environment=environment,
                labels=container_labels,
                network=self._settings.network,
                detach=True,
            )
        except ImageNotFound as exc:
            raise ContainerRuntimeError(
                f"image {resolved_image} not found for agent {agent_id}",
                metadata={"agent_id": agent_id},
            ) from exc
        except DockerException as exc:
            raise ContainerRuntimeError(
                scrub(f"failed to start agent {agent_id}: {exc}", (descriptor,)),
                metadata={"agent_id": agent_id},
            ) from exc

        _LOGGER.info("Started container %s for agent %s", name, agent_id)
        return ContainerHandle(
            agent_id=agent_id,
            container_id=str(container.id),
            name=name,
            image=resolved_image,
        )

    def stop(self, *, agent_id: str) -> None:
        name = self.container_name(agent_id)
        try:
            container = self._docker.containers.get(name)
        except NotFound:
            _LOGGER.debug("Container %s already absent", name)
            return
        except DockerException as exc:
            raise ContainerRuntimeError(
                f"failed to look up agent {agent_id}: {exc}",
                metadata={"agent_id": agent_id},
            ) from exc

        try:
            container.stop(timeout=self._settings.stop_timeout_seconds)
            container.remove(force=True)
        except NotFound:
            _LOGGER.debug("Container %s removed concurrently", name)
            return
        except DockerException as exc:
            raise ContainerRuntimeError(
                f"failed to stop agent {agent_id}: {exc}",
                metadata={"agent_id": agent_id},
            ) from exc
        _LOGGER.info("Stopped container %s for agent %s", name, agent_id)

    def find(self, *, agent_id: str) -> ContainerHandle | None:
        name = self.container_name(agent_id)
        try:
            container = self._docker.containers.get(name)
        except NotFound:
            return None
        except DockerException as exc:
            raise ContainerRuntimeError(
                f"failed to look up agent {agent_id}: {exc}",
                metadata={"agent_id": agent_id},
            ) from exc
        if container.status != "running":
            return None
        return ContainerHandle(
            agent_id=agent_id,
            container_id=str(container.id),
            name=name,
            image=str(container.attrs.get("Config", {}).get("Image", "")),
        )

    def _remove_if_present(self, name: str) -> None:
        """Remove a leftover container holding the name from an earlier run."""
        try:
            stale = self._docker.containers.get(name)
        except NotFound:
            return
        _LOGGER.warning("Removing leftover container %s before start", name)
        stale.remove(force=True)
