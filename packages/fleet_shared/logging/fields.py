"""Canonical logging field names for cross-component consistency.

These constants define a stable key set for structured logs and context
propagation. Keeping names centralized prevents drift between the controller,
its resources, and the CLI.
"""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"

# Agent identity fields.
NAMESPACE = "namespace"
AGENT_ID = "agent_id"
RESOURCE_NAME = "resource_name"
INTENT = "intent"
MODE = "mode"

# Lifecycle and provisioning fields.
STATE = "state"
STEP = "step"
ATTEMPT = "attempt"
MAX_ATTEMPTS = "max_attempts"
OUTCOME = "outcome"
PRIVILEGE = "privilege"
CONTAINER = "container"

# Public API invocation fields.
COMPONENT_ID = "component_id"
API_NAME = "api_name"
PUBLIC_API_INVOCATION_EVENT = "public_api_invocation"
PUBLIC_API_COMPLETION_EVENT = "public_api_completion"
IDEMPOTENCE_HIT_EVENT = "idempotence_hit"
SUCCESS = "success"
DURATION_MS = "duration_ms"
ERRORS = "errors"
WARNINGS = "warnings"

# Common service-level fields.
SERVICE = "service"
ENVIRONMENT = "environment"

REDACTED = "***"
