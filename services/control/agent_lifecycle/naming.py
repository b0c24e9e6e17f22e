"""Deterministic mapping from agent identity to store resource name."""

from __future__ import annotations

import re

from packages.fleet_shared.errors import ConfigurationError, codes
from services.control.agent_lifecycle.domain import AgentIdentity

SEPARATOR = "_"
SUFFIX = "agent"
MAX_IDENTIFIER_BYTES = 63

_NAMESPACE_RE = re.compile(r"^[a-z][a-z0-9]*$")
_AGENT_ID_RE = re.compile(r"^[a-z0-9]+$")


def resolve_resource_name(namespace: str, agent_id: str) -> str:
    """Return the role/database name owned by one agent.

    Neither component may contain the separator, so distinct identities can
    never produce the same name.
    """
    if not _NAMESPACE_RE.match(namespace):
        raise ConfigurationError(
            f"namespace '{namespace}' must match {_NAMESPACE_RE.pattern}",
            field="namespace",
            code=codes.INVALID_IDENTIFIER,
        )
    if not _AGENT_ID_RE.match(agent_id):
        raise ConfigurationError(
            f"agent id '{agent_id}' must match {_AGENT_ID_RE.pattern}",
            field="agent_id",
            code=codes.INVALID_IDENTIFIER,
        )

    name = SEPARATOR.join((namespace, agent_id, SUFFIX))
    if len(name.encode("utf-8")) > MAX_IDENTIFIER_BYTES:
        raise ConfigurationError(
            f"resource name for {namespace}/{agent_id} exceeds "
            f"{MAX_IDENTIFIER_BYTES} bytes",
            field="agent_id",
            code=codes.INVALID_IDENTIFIER,
        )
    return name


def resource_name_for(identity: AgentIdentity) -> str:
    return resolve_resource_name(identity.namespace, identity.agent_id)
