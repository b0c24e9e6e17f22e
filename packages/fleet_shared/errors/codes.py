"""Machine-readable codes carried by ``ErrorDetail.code``.

Codes are stable once published; the CLI and callers branch on them, never on
message text.
"""

# Configuration
CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
PLACEHOLDER_VALUE = "PLACEHOLDER_VALUE"
INVALID_IDENTIFIER = "INVALID_IDENTIFIER"

# Validation
VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_ARGUMENT = "INVALID_ARGUMENT"

# Not found
NOT_FOUND = "NOT_FOUND"
AGENT_NOT_DEPLOYED = "AGENT_NOT_DEPLOYED"

# Conflict
CONFLICT = "CONFLICT"
ALREADY_EXISTS = "ALREADY_EXISTS"

# Policy / authorization
PERMISSION_DENIED = "PERMISSION_DENIED"

# Dependency / external system
DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"
DEPENDENCY_TIMEOUT = "DEPENDENCY_TIMEOUT"
DEPENDENCY_UNAVAILABLE = "DEPENDENCY_UNAVAILABLE"
CONTAINER_RUNTIME_FAILURE = "CONTAINER_RUNTIME_FAILURE"

# Lifecycle outcomes
PARTIAL_FAILURE = "PARTIAL_FAILURE"
CANCELLED = "CANCELLED"

# Internal
INTERNAL_ERROR = "INTERNAL_ERROR"
UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"
