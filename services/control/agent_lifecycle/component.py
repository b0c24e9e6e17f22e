"""Component declaration for the Agent Lifecycle Service."""

from __future__ import annotations

SERVICE_COMPONENT_ID = "service_agent_lifecycle"
