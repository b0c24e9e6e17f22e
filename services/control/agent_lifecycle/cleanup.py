"""Decide whether Undeploy removes an agent's store resource."""

from __future__ import annotations

from services.control.agent_lifecycle.config import AgentLifecycleSettings


class CleanupPolicy:
    """Destructive cleanup is opt-in; an explicit request wins over config."""

    def __init__(self, settings: AgentLifecycleSettings) -> None:
        self._settings = settings

    def should_drop(self, requested: bool | None = None) -> bool:
        if requested is not None:
            return requested
        return self._settings.cleanup_on_undeploy
