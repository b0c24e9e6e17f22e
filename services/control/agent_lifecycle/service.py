"""Authoritative in-process Python API for the Agent Lifecycle Service."""

from __future__ import annotations

from abc import ABC, abstractmethod

from packages.fleet_shared.config import FleetSettings
from resources.adapters.container_runtime import ContainerRuntime
from services.control.agent_lifecycle.domain import (
    AgentConfig,
    AgentIdentity,
    AgentStatus,
    LifecycleIntent,
    LifecycleResult,
    IntentKind,
)


class AgentLifecycleService(ABC):
    """Public API for deploying, updating, and undeploying agents."""

    @abstractmethod
    def deploy(
        self, *, identity: AgentIdentity, config: AgentConfig
    ) -> LifecycleResult:
        """Provision the agent's store resource and start the agent."""

    @abstractmethod
    def update(
        self, *, identity: AgentIdentity, config: AgentConfig
    ) -> LifecycleResult:
        """Restart a running agent with a new config; never provisions."""

    @abstractmethod
    def undeploy(
        self, *, identity: AgentIdentity, cleanup: bool | None = None
    ) -> LifecycleResult:
        """Stop the agent and optionally drop its store resource."""

    @abstractmethod
    def status(self, *, identity: AgentIdentity) -> AgentStatus:
        """Return the current lifecycle snapshot for one agent."""

    def apply(self, intent: LifecycleIntent) -> LifecycleResult:
        """Route one intent to the matching operation."""
        if intent.kind is IntentKind.DEPLOY:
            return self.deploy(identity=intent.identity, config=intent.config)
        if intent.kind is IntentKind.UPDATE:
            return self.update(identity=intent.identity, config=intent.config)
        return self.undeploy(identity=intent.identity, cleanup=intent.cleanup)


def build_agent_lifecycle_service(
    *,
    settings: FleetSettings,
    runtime: ContainerRuntime,
) -> AgentLifecycleService:
    """Build the default lifecycle implementation from typed settings."""
    from services.control.agent_lifecycle.implementation import (
        DefaultAgentLifecycleService,
    )

    return DefaultAgentLifecycleService.from_settings(settings, runtime=runtime)
