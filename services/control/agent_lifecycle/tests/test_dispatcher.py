"""Tests for concurrent intent dispatch."""

from __future__ import annotations

import threading

from packages.fleet_shared.config import load_settings
from services.control.agent_lifecycle.domain import (
    AgentConfig,
    AgentIdentity,
    AgentState,
    AgentStatus,
    IntentKind,
    LifecycleIntent,
    LifecycleResult,
    ResourceState,
)
from services.control.agent_lifecycle.dispatcher import LifecycleDispatcher
from services.control.agent_lifecycle.service import AgentLifecycleService


class _RecordingService(AgentLifecycleService):
    """Service fake that optionally waits for all workers to arrive together."""

    def __init__(self, barrier: threading.Barrier | None = None) -> None:
        self.calls: list[tuple[IntentKind, str, bool | None]] = []
        self._barrier = barrier
        self._lock = threading.Lock()

    def _record(
        self, kind: IntentKind, identity: AgentIdentity, cleanup: bool | None = None
    ) -> LifecycleResult:
        if self._barrier is not None:
            self._barrier.wait(timeout=5)
        with self._lock:
            self.calls.append((kind, str(identity), cleanup))
        return LifecycleResult(
            intent=kind,
            identity=identity,
            ok=True,
            state=AgentState.RUNNING,
        )

    def deploy(self, *, identity: AgentIdentity, config: AgentConfig) -> LifecycleResult:
        return self._record(IntentKind.DEPLOY, identity)

    def update(self, *, identity: AgentIdentity, config: AgentConfig) -> LifecycleResult:
        return self._record(IntentKind.UPDATE, identity)

    def undeploy(
        self, *, identity: AgentIdentity, cleanup: bool | None = None
    ) -> LifecycleResult:
        return self._record(IntentKind.UNDEPLOY, identity, cleanup)

    def status(self, *, identity: AgentIdentity) -> AgentStatus:
        return AgentStatus(
            identity=identity,
            state=AgentState.NOT_DEPLOYED,
            resource_name=None,
            resource_state=ResourceState.ABSENT,
        )


def _identity(agent_id: str) -> AgentIdentity:
    return AgentIdentity(namespace="sam", agent_id=agent_id)


def test_run_all_returns_results_in_submission_order() -> None:
    """Results line up with the submitted intents."""
    service = _RecordingService()
    intents = [
        LifecycleIntent.deploy(_identity("a1")),
        LifecycleIntent.update(_identity("a2")),
        LifecycleIntent.undeploy(_identity("a3"), cleanup=True),
    ]

    with LifecycleDispatcher(service, max_workers=2) as dispatcher:
        results = dispatcher.run_all(intents)

    assert [(result.intent, str(result.identity)) for result in results] == [
        (IntentKind.DEPLOY, "sam/a1"),
        (IntentKind.UPDATE, "sam/a2"),
        (IntentKind.UNDEPLOY, "sam/a3"),
    ]
    assert (IntentKind.UNDEPLOY, "sam/a3", True) in service.calls


def test_independent_intents_run_concurrently() -> None:
    """Intents for different agents are in flight at the same time."""
    service = _RecordingService(barrier=threading.Barrier(3))
    intents = [LifecycleIntent.deploy(_identity(f"a{index}")) for index in range(3)]

    with LifecycleDispatcher(service, max_workers=3) as dispatcher:
        results = dispatcher.run_all(intents)

    assert all(result.ok for result in results)
    assert len(service.calls) == 3


def test_pool_size_comes_from_lifecycle_settings() -> None:
    """max_concurrent_intents bounds how many intents run at once."""
    settings = load_settings(
        cli_params={
            "components": {"service": {"agent_lifecycle": {"max_concurrent_intents": 3}}}
        }
    )
    service = _RecordingService(barrier=threading.Barrier(3))
    intents = [LifecycleIntent.deploy(_identity(f"a{index}")) for index in range(3)]

    with LifecycleDispatcher.from_settings(service, settings) as dispatcher:
        assert dispatcher.max_workers == 3
        results = dispatcher.run_all(intents)

    assert all(result.ok for result in results)
