"""Run independent lifecycle intents concurrently on a worker pool."""

from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor

from packages.fleet_shared.config import FleetSettings
from packages.fleet_shared.logging import get_logger
from services.control.agent_lifecycle.config import resolve_agent_lifecycle_settings
from services.control.agent_lifecycle.domain import LifecycleIntent, LifecycleResult
from services.control.agent_lifecycle.service import AgentLifecycleService

_LOGGER = get_logger(__name__)


class LifecycleDispatcher:
    """Submit intents to a bounded thread pool with no fleet-wide lock.

    Ordering between intents for the same agent is enforced by the service's
    per-agent exclusive section, not by the dispatcher.
    """

    def __init__(self, service: AgentLifecycleService, *, max_workers: int) -> None:
        self._service = service
        self.max_workers = max_workers
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="fleet-intent"
        )

    @classmethod
    def from_settings(
        cls, service: AgentLifecycleService, settings: FleetSettings
    ) -> "LifecycleDispatcher":
        """Size the pool from ``max_concurrent_intents``."""
        lifecycle = resolve_agent_lifecycle_settings(settings)
        return cls(service, max_workers=lifecycle.max_concurrent_intents)

    def submit(self, intent: LifecycleIntent) -> Future[LifecycleResult]:
        _LOGGER.debug("Dispatching %s for %s", intent.kind.value, intent.identity)
        return self._pool.submit(self._service.apply, intent)

    def run_all(self, intents: Iterable[LifecycleIntent]) -> list[LifecycleResult]:
        """Dispatch every intent and return results in submission order."""
        futures = [self.submit(intent) for intent in intents]
        return [future.result() for future in futures]

    def shutdown(self, *, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)

    def __enter__(self) -> "LifecycleDispatcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()
