"""Component declaration for the container runtime adapter."""

from __future__ import annotations

RESOURCE_COMPONENT_ID = "adapter_container_runtime"
