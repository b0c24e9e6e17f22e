"""Resolve the agent store endpoint and credentials for the configured mode.

Resolution never touches the network. Missing or placeholder values are
reported before any store or runtime action is attempted.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import SecretStr

from packages.fleet_shared.errors import ConfigurationError, codes
from packages.fleet_shared.logging import get_logger, register_secret
from resources.substrates.postgres import StoreCredentials, StoreEndpoint
from services.control.agent_lifecycle.config import (
    DEFAULT_ADMIN_USER,
    AgentLifecycleSettings,
)
from services.control.agent_lifecycle.domain import DeploymentMode, ResolvedStore

_LOGGER = get_logger(__name__)

PLACEHOLDER_VALUES = frozenset(
    {
        "your-postgres-host",
        "your-password",
        "your-username",
        "changeme",
        "change-me",
    }
)
PLACEHOLDER_PREFIXES = ("REPLACE_WITH_", "<")


@dataclass(frozen=True)
class ModeIssue:
    """One problem found while checking mode configuration."""

    field: str
    message: str
    code: str
    fatal: bool = True


def is_placeholder(value: str) -> bool:
    """Return whether a value is an unedited template placeholder."""
    stripped = value.strip()
    if stripped.lower() in PLACEHOLDER_VALUES:
        return True
    return stripped.upper().startswith(PLACEHOLDER_PREFIXES)


class ModeSelector:
    """Select endpoint and credentials from immutable lifecycle settings."""

    def __init__(self, settings: AgentLifecycleSettings) -> None:
        self._settings = settings

    @property
    def mode(self) -> DeploymentMode:
        return self._settings.mode

    def check(self) -> list[ModeIssue]:
        """Return every configuration issue for the selected mode."""
        mode = self._settings.mode
        if mode is DeploymentMode.LOCAL:
            return self._check_local()
        if mode is DeploymentMode.MANAGED:
            managed = self._settings.managed
            values = {
                "managed.host": managed.host,
                "managed.admin_user": managed.admin_user,
                "managed.admin_password": managed.admin_password.get_secret_value(),
                "managed.app_password": managed.app_password.get_secret_value(),
            }
            return self._check_required(values, admin_user_field=None)

        values = {
            "endpoint": self._settings.endpoint,
            "port": "" if self._settings.port is None else str(self._settings.port),
            "admin_user": self._settings.admin_user,
            "admin_password": self._settings.admin_password.get_secret_value(),
            "app_password": self._settings.app_password.get_secret_value(),
        }
        return self._check_required(values, admin_user_field="admin_user")

    def resolve(self) -> ResolvedStore:
        """Return the resolved store or raise ``ConfigurationError``."""
        issues = self.check()
        for issue in issues:
            if issue.fatal:
                raise ConfigurationError(issue.message, field=issue.field, code=issue.code)
        for issue in issues:
            _LOGGER.warning(issue.message)

        settings = self._settings
        if settings.mode is DeploymentMode.LOCAL:
            return ResolvedStore(
                mode=settings.mode,
                driver=settings.local_driver,
                local_data_dir=settings.local_data_dir.rstrip("/"),
            )

        if settings.mode is DeploymentMode.MANAGED:
            managed = settings.managed
            endpoint = StoreEndpoint(host=managed.host, port=managed.port)
            admin = StoreCredentials(
                user=managed.admin_user, password=managed.admin_password
            )
            app_password = managed.app_password
        else:
            assert settings.port is not None
            endpoint = StoreEndpoint(host=settings.endpoint.strip(), port=settings.port)
            admin = StoreCredentials(
                user=settings.admin_user.strip(), password=settings.admin_password
            )
            app_password = settings.app_password

        _register(admin.password)
        _register(app_password)
        return ResolvedStore(
            mode=settings.mode,
            driver=settings.driver,
            endpoint=endpoint,
            admin_credentials=admin,
            app_password=app_password,
        )

    def _check_local(self) -> list[ModeIssue]:
        if self._settings.local_data_dir.strip():
            return []
        return [
            ModeIssue(
                field="local_data_dir",
                message="local mode requires local_data_dir",
                code=codes.MISSING_REQUIRED_FIELD,
            )
        ]

    def _check_required(
        self, values: dict[str, str], *, admin_user_field: str | None
    ) -> list[ModeIssue]:
        mode = self._settings.mode.value
        issues: list[ModeIssue] = []
        for name, value in values.items():
            if value.strip() == "":
                issues.append(
                    ModeIssue(
                        field=name,
                        message=f"{mode} mode requires {name}",
                        code=codes.MISSING_REQUIRED_FIELD,
                    )
                )
            elif is_placeholder(value):
                issues.append(
                    ModeIssue(
                        field=name,
                        message=f"{name} still holds a placeholder value",
                        code=codes.PLACEHOLDER_VALUE,
                    )
                )

        if (
            admin_user_field is not None
            and values[admin_user_field].strip() == DEFAULT_ADMIN_USER
        ):
            issues.append(
                ModeIssue(
                    field=admin_user_field,
                    message=(
                        f"{admin_user_field} is the default '{DEFAULT_ADMIN_USER}'; "
                        "it must hold CREATEDB and CREATEROLE on the store"
                    ),
                    code=codes.CONFIGURATION_ERROR,
                    fatal=False,
                )
            )
        return issues


def _register(secret: SecretStr) -> None:
    register_secret(secret.get_secret_value())
