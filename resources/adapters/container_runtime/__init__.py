"""Container runtime adapter used to start and stop agent processes."""

from resources.adapters.container_runtime.adapter import (
    ContainerHandle,
    ContainerRuntime,
)
from resources.adapters.container_runtime.component import RESOURCE_COMPONENT_ID
from resources.adapters.container_runtime.config import (
    ContainerRuntimeSettings,
    resolve_base_url,
    resolve_container_runtime_settings,
)
from resources.adapters.container_runtime.docker_runtime import DockerContainerRuntime

__all__ = [
    "RESOURCE_COMPONENT_ID",
    "ContainerHandle",
    "ContainerRuntime",
    "ContainerRuntimeSettings",
    "DockerContainerRuntime",
    "resolve_base_url",
    "resolve_container_runtime_settings",
]
