"""CLI tests for the Fleet agent lifecycle Typer commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from typer.testing import CliRunner

from actors.cli import main as cli_main
from packages.fleet_shared.errors import (
    ConfigurationError,
    ContainerRuntimeError,
    codes,
    configuration_error,
    dependency_error,
)
from services.control.agent_lifecycle import (
    AgentConfig,
    AgentIdentity,
    AgentLifecycleService,
    AgentState,
    AgentStatus,
    IntentKind,
    LifecycleResult,
    ResourceState,
)

runner = CliRunner()


class _FakeService(AgentLifecycleService):
    """Lifecycle service recording calls and returning canned results."""

    def __init__(self, *, ok: bool = True, errors: list[Any] | None = None) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._ok = ok
        self._errors = errors or []

    def _result(self, intent: IntentKind, identity: AgentIdentity) -> LifecycleResult:
        return LifecycleResult(
            intent=intent,
            identity=identity,
            ok=self._ok,
            state=AgentState.RUNNING if self._ok else AgentState.NOT_DEPLOYED,
            resource_name=f"{identity.namespace}_{identity.agent_id}_agent",
            resource_state=ResourceState.READY,
            errors=self._errors,
        )

    def deploy(self, *, identity: AgentIdentity, config: AgentConfig) -> LifecycleResult:
        self.calls.append(("deploy", {"identity": identity, "config": config}))
        return self._result(IntentKind.DEPLOY, identity)

    def update(self, *, identity: AgentIdentity, config: AgentConfig) -> LifecycleResult:
        self.calls.append(("update", {"identity": identity, "config": config}))
        return self._result(IntentKind.UPDATE, identity)

    def undeploy(
        self, *, identity: AgentIdentity, cleanup: bool | None = None
    ) -> LifecycleResult:
        self.calls.append(("undeploy", {"identity": identity, "cleanup": cleanup}))
        return self._result(IntentKind.UNDEPLOY, identity)

    def status(self, *, identity: AgentIdentity) -> AgentStatus:
        return AgentStatus(
            identity=identity,
            state=AgentState.NOT_DEPLOYED,
            resource_name=None,
            resource_state=ResourceState.ABSENT,
        )


def _install_service(monkeypatch: Any, service: AgentLifecycleService) -> list[Any]:
    """Replace the service builder so no engine or store is contacted."""
    built: list[Any] = []

    def _build(settings: Any) -> AgentLifecycleService:
        built.append(settings)
        return service

    monkeypatch.setattr(cli_main, "_build_service", _build)
    return built


def test_deploy_passes_identity_env_and_labels(monkeypatch: Any) -> None:
    """Deploy should parse repeated KEY=VALUE options into the agent config."""
    service = _FakeService()
    built = _install_service(monkeypatch, service)

    result = runner.invoke(
        cli_main.app,
        [
            "deploy",
            "sam",
            "a1",
            "--image",
            "agents/runner:1",
            "--env",
            "MODE=fast",
            "-e",
            "EMPTY=",
            "--label",
            "team=core",
        ],
    )

    assert result.exit_code == 0, result.output
    assert len(built) == 1
    name, kwargs = service.calls[0]
    assert name == "deploy"
    assert kwargs["identity"] == AgentIdentity(namespace="sam", agent_id="a1")
    assert kwargs["config"].image == "agents/runner:1"
    assert kwargs["config"].env == {"MODE": "fast", "EMPTY": ""}
    assert kwargs["config"].labels == {"team": "core"}
    assert "deploy sam/a1" in result.output
    assert "sam_a1_agent (ready)" in result.output


def test_deploy_json_output_is_machine_readable(monkeypatch: Any) -> None:
    """--json should emit one JSON document with enum values as strings."""
    _install_service(monkeypatch, _FakeService())

    result = runner.invoke(cli_main.app, ["--json", "deploy", "sam", "a1"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["intent"] == "deploy"
    assert payload["state"] == "running"
    assert payload["identity"] == {"namespace": "sam", "agent_id": "a1"}
    assert payload["errors"] == []


def test_malformed_env_pair_is_a_usage_error(monkeypatch: Any) -> None:
    """An --env value without '=' should be rejected before any work starts."""
    service = _FakeService()
    built = _install_service(monkeypatch, service)

    result = runner.invoke(cli_main.app, ["deploy", "sam", "a1", "--env", "NOEQUALS"])

    assert result.exit_code == 2
    assert built == []
    assert service.calls == []


def test_failed_intent_exits_with_intent_failure_code(monkeypatch: Any) -> None:
    """A dependency failure in the result should map to exit code 3."""
    error = dependency_error("store unreachable", code=codes.DEPENDENCY_UNAVAILABLE)
    _install_service(monkeypatch, _FakeService(ok=False, errors=[error]))

    result = runner.invoke(cli_main.app, ["deploy", "sam", "a1"])

    assert result.exit_code == cli_main.INTENT_FAILURE_EXIT_CODE
    assert "error: DEPENDENCY_UNAVAILABLE: store unreachable" in result.output


def test_configuration_failure_in_result_exits_with_configuration_code(
    monkeypatch: Any,
) -> None:
    """A configuration-category error in the result should map to exit code 2."""
    error = configuration_error("endpoint is required", code=codes.MISSING_REQUIRED_FIELD)
    _install_service(monkeypatch, _FakeService(ok=False, errors=[error]))

    result = runner.invoke(cli_main.app, ["deploy", "sam", "a1"])

    assert result.exit_code == cli_main.CONFIGURATION_ERROR_EXIT_CODE


def test_build_failures_map_to_stable_exit_codes(monkeypatch: Any) -> None:
    """Setup errors should exit 2 for configuration and 3 for the engine."""

    def _raise_config(settings: Any) -> AgentLifecycleService:
        raise ConfigurationError("bad settings", field="endpoint")

    monkeypatch.setattr(cli_main, "_build_service", _raise_config)
    config_result = runner.invoke(cli_main.app, ["deploy", "sam", "a1"])

    def _raise_runtime(settings: Any) -> AgentLifecycleService:
        raise ContainerRuntimeError("docker engine unavailable")

    monkeypatch.setattr(cli_main, "_build_service", _raise_runtime)
    runtime_result = runner.invoke(cli_main.app, ["deploy", "sam", "a1"])

    assert config_result.exit_code == cli_main.CONFIGURATION_ERROR_EXIT_CODE
    assert "bad settings" in config_result.output
    assert runtime_result.exit_code == cli_main.INTENT_FAILURE_EXIT_CODE
    assert "docker engine unavailable" in runtime_result.output


def test_update_forwards_new_config(monkeypatch: Any) -> None:
    """Update should call the service with the parsed configuration."""
    service = _FakeService()
    _install_service(monkeypatch, service)

    result = runner.invoke(cli_main.app, ["update", "sam", "a1", "--env", "MODE=slow"])

    assert result.exit_code == 0, result.output
    name, kwargs = service.calls[0]
    assert name == "update"
    assert kwargs["config"].env == {"MODE": "slow"}


def test_undeploy_cleanup_flag_is_tri_state(monkeypatch: Any) -> None:
    """Undeploy should pass None unless --cleanup or --keep-data is given."""
    service = _FakeService()
    _install_service(monkeypatch, service)

    runner.invoke(cli_main.app, ["undeploy", "sam", "a1"])
    runner.invoke(cli_main.app, ["undeploy", "sam", "a1", "--cleanup"])
    runner.invoke(cli_main.app, ["undeploy", "sam", "a1", "--keep-data"])

    assert [kwargs["cleanup"] for _, kwargs in service.calls] == [None, True, False]


def test_resolve_name_prints_resource_name() -> None:
    """resolve-name should print the derived name without loading settings."""
    result = runner.invoke(cli_main.app, ["resolve-name", "sam", "a1"])
    json_result = runner.invoke(cli_main.app, ["--json", "resolve-name", "sam", "a1"])

    assert result.exit_code == 0
    assert result.stdout.strip() == "sam_a1_agent"
    assert json.loads(json_result.stdout) == {"resource_name": "sam_a1_agent"}


def test_resolve_name_rejects_invalid_identity() -> None:
    """An identity outside the allowed alphabet should exit with code 2."""
    result = runner.invoke(cli_main.app, ["resolve-name", "Sam", "a1"])

    assert result.exit_code == cli_main.CONFIGURATION_ERROR_EXIT_CODE
    assert "namespace" in result.output


def test_validate_reports_default_local_configuration(tmp_path: Path) -> None:
    """validate should pass for local mode and warn about the missing image."""
    config_path = tmp_path / "fleet.yaml"
    config_path.write_text("logging:\n  json_output: false\n", encoding="utf-8")

    result = runner.invoke(
        cli_main.app, ["--json", "--config", str(config_path), "validate"]
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["ok"] is True
    assert payload["mode"] == "local"
    levels = {check["name"]: check["level"] for check in payload["checks"]}
    assert levels["mode"] == "ok"
    assert "warning" in levels.values()


def test_validate_fails_for_incomplete_external_store(tmp_path: Path) -> None:
    """validate should exit 2 when external mode lacks an endpoint."""
    config_path = tmp_path / "fleet.yaml"
    config_path.write_text(
        "\n".join(
            [
                "logging:",
                "  json_output: false",
                "components:",
                "  service:",
                "    agent_lifecycle:",
                "      mode: external",
                "",
            ]
        ),
        encoding="utf-8",
    )

    result = runner.invoke(cli_main.app, ["--config", str(config_path), "validate"])

    assert result.exit_code == cli_main.CONFIGURATION_ERROR_EXIT_CODE
    assert "Configuration: ❌ mode=external" in result.output


def test_build_service_wires_runtime_and_lifecycle(monkeypatch: Any) -> None:
    """_build_service should connect the engine at the resolved socket URL."""
    from packages.fleet_shared.config import FleetSettings

    captured: dict[str, Any] = {}

    class _FakeDockerRuntime:
        @classmethod
        def connect(cls, *, settings: Any, base_url: str) -> str:
            captured["base_url"] = base_url
            return "runtime"

    def _build(*, settings: Any, runtime: Any) -> str:
        captured["runtime"] = runtime
        return "service"

    monkeypatch.setattr(cli_main, "DockerContainerRuntime", _FakeDockerRuntime)
    monkeypatch.setattr(cli_main, "build_agent_lifecycle_service", _build)

    service = cli_main._build_service(FleetSettings())

    assert service == "service"
    assert captured == {
        "base_url": "unix:///var/run/docker.sock",
        "runtime": "runtime",
    }
