"""Offline configuration checks for the agent store and runtime settings."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field

from packages.fleet_shared.config import FleetSettings
from packages.fleet_shared.errors import codes
from resources.adapters.container_runtime import resolve_container_runtime_settings
from services.control.agent_lifecycle.config import resolve_agent_lifecycle_settings
from services.control.agent_lifecycle.domain import DeploymentMode
from services.control.agent_lifecycle.mode import ModeSelector


class CheckLevel(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


class ValidationCheck(BaseModel):
    """One named configuration check and its outcome."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    level: CheckLevel
    detail: str
    code: str | None = None


class ValidationReport(BaseModel):
    """Aggregate result of ``validate_configuration``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: DeploymentMode | None = None
    checks: list[ValidationCheck] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def errors(self) -> list[ValidationCheck]:
        return [check for check in self.checks if check.level is CheckLevel.ERROR]

    @property
    def warnings(self) -> list[ValidationCheck]:
        return [check for check in self.checks if check.level is CheckLevel.WARNING]


def validate_configuration(settings: FleetSettings) -> ValidationReport:
    """Check storage mode and runtime settings without contacting anything."""
    checks: list[ValidationCheck] = []

    try:
        lifecycle = resolve_agent_lifecycle_settings(settings)
    except ValidationError as exc:
        return ValidationReport(
            checks=[
                ValidationCheck(
                    name="agent_lifecycle",
                    level=CheckLevel.ERROR,
                    detail=_summarize(exc),
                    code=codes.CONFIGURATION_ERROR,
                )
            ]
        )

    checks.append(
        ValidationCheck(
            name="mode",
            level=CheckLevel.OK,
            detail=f"agent store mode is {lifecycle.mode.value}",
        )
    )
    issues = ModeSelector(lifecycle).check()
    for issue in issues:
        checks.append(
            ValidationCheck(
                name=issue.field,
                level=CheckLevel.ERROR if issue.fatal else CheckLevel.WARNING,
                detail=issue.message,
                code=issue.code,
            )
        )
    if not any(issue.fatal for issue in issues):
        checks.append(
            ValidationCheck(
                name="store",
                level=CheckLevel.OK,
                detail=f"{lifecycle.mode.value} store settings complete",
            )
        )

    try:
        runtime = resolve_container_runtime_settings(settings)
    except ValidationError as exc:
        checks.append(
            ValidationCheck(
                name="container_runtime",
                level=CheckLevel.ERROR,
                detail=_summarize(exc),
                code=codes.CONFIGURATION_ERROR,
            )
        )
    else:
        if runtime.image.strip():
            checks.append(
                ValidationCheck(
                    name="image",
                    level=CheckLevel.OK,
                    detail=f"default agent image is {runtime.image}",
                )
            )
        else:
            checks.append(
                ValidationCheck(
                    name="image",
                    level=CheckLevel.WARNING,
                    detail="no default agent image; every deploy must pass one",
                    code=codes.MISSING_REQUIRED_FIELD,
                )
            )

    return ValidationReport(mode=lifecycle.mode, checks=checks)


def _summarize(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'value'}: {error['msg']}"
        for error in exc.errors()
    )
