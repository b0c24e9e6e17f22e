"""Fleet operator CLI actor implemented with Typer."""

from __future__ import annotations

import dataclasses
import json
import os
import sys
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import typer
from pydantic import ValidationError

from packages.fleet_shared.config import FleetSettings, load_settings
from packages.fleet_shared.errors import (
    ConfigurationError,
    ContainerRuntimeError,
    ErrorCategory,
)
from packages.fleet_shared.logging import configure_logging, scrub
from resources.adapters.container_runtime import (
    DockerContainerRuntime,
    resolve_base_url,
    resolve_container_runtime_settings,
)
from services.control.agent_lifecycle import (
    AgentConfig,
    AgentIdentity,
    AgentLifecycleService,
    LifecycleResult,
    build_agent_lifecycle_service,
    resolve_resource_name,
)
from services.control.agent_lifecycle.validation import (
    CheckLevel,
    ValidationReport,
    validate_configuration,
)

SUCCESS_EXIT_CODE = 0
CONFIGURATION_ERROR_EXIT_CODE = 2
INTENT_FAILURE_EXIT_CODE = 3


@dataclass(frozen=True)
class CliConfig:
    """Global CLI runtime options propagated to every command."""

    config_path: Path | None
    as_json: bool


def _serialize(value: Any) -> Any:
    """Convert result objects to JSON-serializable structures."""

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime, date, Path)):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _serialize(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {str(key): _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize(item) for item in value]
    if hasattr(value, "model_dump"):
        return _serialize(value.model_dump(mode="json"))
    return str(value)


def _emit_output(result: Any, as_json: bool) -> None:
    """Render command output in requested format."""

    data = _serialize(result)
    if as_json:
        typer.echo(json.dumps(data, sort_keys=True, separators=(",", ":")))
        return
    rendered = _render_human(data)
    if rendered is not None:
        typer.echo(rendered)
        return
    typer.echo(str(data))


def _emit_error(exc: Exception, as_json: bool) -> None:
    """Render setup failures to stderr with secrets masked."""

    message = scrub(str(exc))
    if as_json:
        typer.echo(json.dumps({"error": message}), err=True)
        return
    typer.echo(f"error: {message}", err=True)


def _render_human(data: Any) -> str | None:
    """Return human-oriented rendering for recognized response shapes."""
    if isinstance(data, dict):
        if _looks_like_lifecycle_result(data):
            return _render_lifecycle_result(data)
        if _looks_like_validation_report(data):
            return _render_validation_report(data)
        return json.dumps(data, indent=2, sort_keys=True)
    return None


def _looks_like_lifecycle_result(value: dict[str, Any]) -> bool:
    """Return True for lifecycle intent results."""
    return "intent" in value and "state" in value and "identity" in value


def _looks_like_validation_report(value: dict[str, Any]) -> bool:
    """Return True for configuration validation reports."""
    return isinstance(value.get("checks"), list)


def _render_lifecycle_result(data: dict[str, Any]) -> str:
    """Render one lifecycle result for human scanning."""
    identity = data.get("identity", {})
    who = f"{identity.get('namespace', '?')}/{identity.get('agent_id', '?')}"
    ok = bool(data.get("ok", False))
    lines = [f"{data['intent']} {who}: {_status_icon(ok)} {data['state']}"]
    if data.get("resource_name"):
        resource_state = data.get("resource_state") or "unknown"
        lines.append(f"  resource: {data['resource_name']} ({resource_state})")
    for warning in data.get("warnings", []):
        lines.append(f"  warning: {warning['code']}: {warning['message']}")
    for error in data.get("errors", []):
        lines.append(f"  error: {error['code']}: {error['message']}")
    return "\n".join(lines)


def _render_validation_report(data: dict[str, Any]) -> str:
    """Render configuration checks one per line."""
    lines = [f"Configuration: {_status_icon(bool(data.get('ok')))} mode={data.get('mode')}"]
    for check in data["checks"]:
        icon = {
            CheckLevel.OK.value: "✅",
            CheckLevel.WARNING.value: "⚠️",
        }.get(check["level"], "❌")
        lines.append(f"  {icon} {check['name']}: {check['detail']}")
    return "\n".join(lines)


def _status_icon(ok: bool) -> str:
    """Return status icon for one outcome."""
    return "✅" if ok else "❌"


def _parse_pairs(values: list[str], option: str) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options into a mapping."""
    pairs: dict[str, str] = {}
    for item in values:
        key, separator, value = item.partition("=")
        if not separator or key.strip() == "":
            raise typer.BadParameter(f"expected KEY=VALUE, got '{item}'", param_hint=option)
        pairs[key.strip()] = value
    return pairs


def _load(cfg: CliConfig) -> FleetSettings:
    """Load settings and route component logs to stderr."""
    settings = load_settings(config_path=cfg.config_path)
    configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.json_output,
        service=settings.logging.service,
        environment=settings.logging.environment,
        stream=sys.stderr,
    )
    return settings


def _build_service(settings: FleetSettings) -> AgentLifecycleService:
    """Return one lifecycle service bound to the configured container engine."""
    runtime_settings = resolve_container_runtime_settings(settings)
    runtime = DockerContainerRuntime.connect(
        settings=runtime_settings,
        base_url=resolve_base_url(runtime_settings, environ=os.environ),
    )
    return build_agent_lifecycle_service(settings=settings, runtime=runtime)


def _exit_code(result: LifecycleResult) -> int:
    """Map one lifecycle result to process exit semantics."""
    if result.ok:
        return SUCCESS_EXIT_CODE
    if any(error.category is ErrorCategory.CONFIGURATION for error in result.errors):
        return CONFIGURATION_ERROR_EXIT_CODE
    return INTENT_FAILURE_EXIT_CODE


def _run_intent(
    cfg: CliConfig, invoke: Callable[[AgentLifecycleService], LifecycleResult]
) -> None:
    """Execute one lifecycle intent and map outputs/errors to process semantics."""
    try:
        service = _build_service(_load(cfg))
    except (ConfigurationError, ValidationError) as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=CONFIGURATION_ERROR_EXIT_CODE) from exc
    except ContainerRuntimeError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=INTENT_FAILURE_EXIT_CODE) from exc

    result = invoke(service)
    _emit_output(result, cfg.as_json)
    raise typer.Exit(code=_exit_code(result))


def _require_config(ctx: typer.Context) -> CliConfig:
    """Return required CLI config from Typer context."""

    config = ctx.obj
    if not isinstance(config, CliConfig):
        raise RuntimeError("CLI configuration not initialized")
    return config


app = typer.Typer(no_args_is_help=True, help="Fleet agent lifecycle command-line interface")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None,
        "--config",
        envvar="FLEET_CONFIG",
        help="Path to fleet.yaml (defaults to ~/.config/fleet/fleet.yaml)",
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
) -> None:
    """Store global options for all commands."""

    ctx.obj = CliConfig(config_path=config, as_json=as_json)


@app.command("deploy")
def deploy_command(
    ctx: typer.Context,
    namespace: str = typer.Argument(..., help="Agent namespace"),
    agent_id: str = typer.Argument(..., help="Agent id within the namespace"),
    image: str | None = typer.Option(None, help="Agent image (defaults to config)"),
    env: list[str] = typer.Option([], "--env", "-e", help="KEY=VALUE override"),
    label: list[str] = typer.Option([], "--label", "-l", help="KEY=VALUE label"),
) -> None:
    """Provision the agent's store and start it."""
    cfg = _require_config(ctx)
    agent_config = AgentConfig(
        image=image,
        env=_parse_pairs(env, "--env"),
        labels=_parse_pairs(label, "--label"),
    )
    identity = AgentIdentity(namespace=namespace, agent_id=agent_id)
    _run_intent(
        cfg, lambda service: service.deploy(identity=identity, config=agent_config)
    )


@app.command("update")
def update_command(
    ctx: typer.Context,
    namespace: str = typer.Argument(..., help="Agent namespace"),
    agent_id: str = typer.Argument(..., help="Agent id within the namespace"),
    image: str | None = typer.Option(None, help="Agent image (defaults to config)"),
    env: list[str] = typer.Option([], "--env", "-e", help="KEY=VALUE override"),
    label: list[str] = typer.Option([], "--label", "-l", help="KEY=VALUE label"),
) -> None:
    """Restart a running agent with a new configuration."""
    cfg = _require_config(ctx)
    agent_config = AgentConfig(
        image=image,
        env=_parse_pairs(env, "--env"),
        labels=_parse_pairs(label, "--label"),
    )
    identity = AgentIdentity(namespace=namespace, agent_id=agent_id)
    _run_intent(
        cfg, lambda service: service.update(identity=identity, config=agent_config)
    )


@app.command("undeploy")
def undeploy_command(
    ctx: typer.Context,
    namespace: str = typer.Argument(..., help="Agent namespace"),
    agent_id: str = typer.Argument(..., help="Agent id within the namespace"),
    cleanup: bool | None = typer.Option(
        None,
        "--cleanup/--keep-data",
        help="Drop or keep the agent's store (defaults to cleanup_on_undeploy)",
    ),
) -> None:
    """Stop the agent and optionally drop its store."""
    cfg = _require_config(ctx)
    identity = AgentIdentity(namespace=namespace, agent_id=agent_id)
    _run_intent(
        cfg, lambda service: service.undeploy(identity=identity, cleanup=cleanup)
    )


@app.command("resolve-name")
def resolve_name_command(
    ctx: typer.Context,
    namespace: str = typer.Argument(..., help="Agent namespace"),
    agent_id: str = typer.Argument(..., help="Agent id within the namespace"),
) -> None:
    """Print the store resource name owned by one agent."""
    cfg = _require_config(ctx)
    try:
        name = resolve_resource_name(namespace, agent_id)
    except ConfigurationError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=CONFIGURATION_ERROR_EXIT_CODE) from exc
    if cfg.as_json:
        _emit_output({"resource_name": name}, as_json=True)
    else:
        typer.echo(name)


@app.command("validate")
def validate_command(ctx: typer.Context) -> None:
    """Check store and runtime configuration without contacting either."""
    cfg = _require_config(ctx)
    try:
        report: ValidationReport = validate_configuration(_load(cfg))
    except ValidationError as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=CONFIGURATION_ERROR_EXIT_CODE) from exc
    _emit_output(report, cfg.as_json)
    raise typer.Exit(
        code=SUCCESS_EXIT_CODE if report.ok else CONFIGURATION_ERROR_EXIT_CODE
    )


if __name__ == "__main__":
    app()
