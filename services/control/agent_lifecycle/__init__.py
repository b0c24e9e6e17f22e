"""Agent Lifecycle Service: per-agent store provisioning and process control."""

from services.control.agent_lifecycle.component import SERVICE_COMPONENT_ID
from services.control.agent_lifecycle.config import (
    AgentLifecycleSettings,
    resolve_agent_lifecycle_settings,
)
from services.control.agent_lifecycle.domain import (
    AgentConfig,
    AgentIdentity,
    AgentState,
    AgentStatus,
    ConnectionDescriptor,
    DeploymentMode,
    IntentKind,
    LifecycleIntent,
    LifecycleResult,
    ResolvedStore,
    ResourceState,
)
from services.control.agent_lifecycle.naming import resolve_resource_name
from services.control.agent_lifecycle.service import (
    AgentLifecycleService,
    build_agent_lifecycle_service,
)

__all__ = [
    "SERVICE_COMPONENT_ID",
    "AgentConfig",
    "AgentIdentity",
    "AgentLifecycleService",
    "AgentLifecycleSettings",
    "AgentState",
    "AgentStatus",
    "ConnectionDescriptor",
    "DeploymentMode",
    "IntentKind",
    "LifecycleIntent",
    "LifecycleResult",
    "ResolvedStore",
    "ResourceState",
    "build_agent_lifecycle_service",
    "resolve_agent_lifecycle_settings",
    "resolve_resource_name",
]
