"""Concrete Agent Lifecycle Service implementation.

Each intent runs inside an exclusive section keyed by the agent's resource
name, so intents for one agent are serialized while different agents proceed
in parallel. Every failure surfaces as ``LifecycleResult.errors``; callers
never see a raw driver or runtime exception.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from threading import Event, Lock
from typing import Callable

from packages.fleet_shared.config import FleetSettings
from packages.fleet_shared.errors import (
    ConfigurationError,
    ContainerRuntimeError,
    ErrorDetail,
    FleetError,
    ProvisioningCancelledError,
    codes,
    dependency_error,
    exception_to_error,
    not_found_error,
)
from packages.fleet_shared.logging import (
    fields,
    get_logger,
    log_context,
    public_api_logged,
)
from resources.adapters.container_runtime import ContainerHandle, ContainerRuntime
from resources.substrates.postgres import (
    PostgresAdminSettings,
    PostgresAdminStore,
    resolve_postgres_settings,
)
from services.control.agent_lifecycle.cleanup import CleanupPolicy
from services.control.agent_lifecycle.component import SERVICE_COMPONENT_ID
from services.control.agent_lifecycle.config import (
    AgentLifecycleSettings,
    RetrySettings,
    resolve_agent_lifecycle_settings,
)
from services.control.agent_lifecycle.domain import (
    AgentConfig,
    AgentIdentity,
    AgentState,
    AgentStatus,
    IntentKind,
    LifecycleResult,
    ResolvedStore,
    ResourceState,
)
from services.control.agent_lifecycle.locks import KeyedLocks
from services.control.agent_lifecycle.mode import ModeSelector
from services.control.agent_lifecycle.naming import resource_name_for
from services.control.agent_lifecycle.provisioning import (
    LocalFileProvisioner,
    Provisioner,
    ProvisioningExecutor,
)
from services.control.agent_lifecycle.service import AgentLifecycleService

_LOGGER = get_logger(__name__)

ProvisionerFactory = Callable[[ResolvedStore], Provisioner]


def build_provisioner(
    store: ResolvedStore,
    *,
    postgres_settings: PostgresAdminSettings,
    retry: RetrySettings,
    sleeper: Callable[[float], None] = time.sleep,
) -> Provisioner:
    """Return the provisioner matching the resolved store's mode."""
    if not store.requires_provisioning:
        assert store.local_data_dir is not None
        return LocalFileProvisioner(data_dir=Path(store.local_data_dir))
    assert store.endpoint is not None
    return ProvisioningExecutor(
        store=PostgresAdminStore(endpoint=store.endpoint, settings=postgres_settings),
        retry=retry,
        sleeper=sleeper,
    )


@dataclass
class _AgentRecord:
    """Mutable controller-side state for one agent; guarded by its intent lock."""

    identity: AgentIdentity
    resource_name: str
    state: AgentState = AgentState.NOT_DEPLOYED
    resource_state: ResourceState = ResourceState.ABSENT
    container: ContainerHandle | None = None
    config: AgentConfig | None = None
    cancel: Event | None = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class DefaultAgentLifecycleService(AgentLifecycleService):
    """Lifecycle controller coupling store provisioning to container lifecycle."""

    def __init__(
        self,
        *,
        settings: AgentLifecycleSettings,
        runtime: ContainerRuntime,
        postgres_settings: PostgresAdminSettings | None = None,
        provisioner_factory: ProvisionerFactory | None = None,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._runtime = runtime
        self._selector = ModeSelector(settings)
        self._cleanup = CleanupPolicy(settings)
        admin_settings = postgres_settings or PostgresAdminSettings()
        self._provisioner_factory: ProvisionerFactory = provisioner_factory or (
            lambda store: build_provisioner(
                store,
                postgres_settings=admin_settings,
                retry=settings.retry,
                sleeper=sleeper,
            )
        )
        self._provisioners: dict[str, Provisioner] = {}
        self._provisioners_lock = Lock()
        self._records: dict[str, _AgentRecord] = {}
        self._records_lock = Lock()
        self._intent_locks = KeyedLocks()

    @classmethod
    def from_settings(
        cls, settings: FleetSettings, *, runtime: ContainerRuntime
    ) -> "DefaultAgentLifecycleService":
        """Build the controller from typed settings and an agent runtime."""
        return cls(
            settings=resolve_agent_lifecycle_settings(settings),
            runtime=runtime,
            postgres_settings=resolve_postgres_settings(settings),
        )

    @public_api_logged(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("identity",),
    )
    def deploy(
        self, *, identity: AgentIdentity, config: AgentConfig
    ) -> LifecycleResult:
        try:
            resource_name = resource_name_for(identity)
            store = self._selector.resolve()
        except ConfigurationError as exc:
            return self._rejected(IntentKind.DEPLOY, identity, exc)

        with self._intent_locks.hold(resource_name), log_context(
            self._log_fields(IntentKind.DEPLOY, identity, resource_name)
        ):
            try:
                record = self._record(identity, resource_name)
            except ContainerRuntimeError as exc:
                return self._rejected(IntentKind.DEPLOY, identity, exc)
            if record.state is AgentState.RUNNING:
                with log_context({fields.EVENT: fields.IDEMPOTENCE_HIT_EVENT}):
                    _LOGGER.info("Agent %s already running", identity)
                return self._result(IntentKind.DEPLOY, record, ok=True)

            cancel = Event()
            record.cancel = cancel
            self._transition(record, AgentState.PROVISIONING)
            try:
                provisioner = self._provisioner_for(store)
                try:
                    record.resource_state = provisioner.ensure_exists(
                        resource_name,
                        store.admin_credentials,
                        store.app_credentials(resource_name),
                        cancel=cancel,
                    )
                except Exception as exc:  # noqa: BLE001
                    record.resource_state = provisioner.ledger.get(resource_name)
                    self._transition(record, AgentState.NOT_DEPLOYED)
                    return self._failed(IntentKind.DEPLOY, record, exc)
                return self._start(IntentKind.DEPLOY, record, store, config, cancel)
            finally:
                record.cancel = None

    @public_api_logged(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("identity",),
    )
    def update(
        self, *, identity: AgentIdentity, config: AgentConfig
    ) -> LifecycleResult:
        try:
            resource_name = resource_name_for(identity)
            store = self._selector.resolve()
        except ConfigurationError as exc:
            return self._rejected(IntentKind.UPDATE, identity, exc)

        with self._intent_locks.hold(resource_name), log_context(
            self._log_fields(IntentKind.UPDATE, identity, resource_name)
        ):
            try:
                record = self._record(identity, resource_name)
            except ContainerRuntimeError as exc:
                return self._rejected(IntentKind.UPDATE, identity, exc)
            if record.state is not AgentState.RUNNING:
                return self._result(
                    IntentKind.UPDATE,
                    record,
                    ok=False,
                    errors=[
                        not_found_error(
                            f"agent {identity} is not running",
                            code=codes.AGENT_NOT_DEPLOYED,
                            metadata={"state": record.state.value},
                        )
                    ],
                )

            cancel = Event()
            record.cancel = cancel
            self._transition(record, AgentState.UPDATING)
            try:
                try:
                    self._runtime.stop(agent_id=identity.runtime_id)
                except Exception as exc:  # noqa: BLE001
                    self._transition(record, AgentState.RUNNING)
                    return self._failed(IntentKind.UPDATE, record, exc)
                record.container = None
                return self._start(IntentKind.UPDATE, record, store, config, cancel)
            finally:
                record.cancel = None

    @public_api_logged(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("identity",),
    )
    def undeploy(
        self, *, identity: AgentIdentity, cleanup: bool | None = None
    ) -> LifecycleResult:
        try:
            resource_name = resource_name_for(identity)
            drop = self._cleanup.should_drop(cleanup)
            store = self._selector.resolve() if drop else None
        except ConfigurationError as exc:
            return self._rejected(IntentKind.UNDEPLOY, identity, exc)

        self._signal_cancel(resource_name)
        with self._intent_locks.hold(resource_name), log_context(
            self._log_fields(IntentKind.UNDEPLOY, identity, resource_name)
        ):
            try:
                record = self._record(identity, resource_name)
            except ContainerRuntimeError as exc:
                return self._rejected(IntentKind.UNDEPLOY, identity, exc)
            previous = record.state
            self._transition(record, AgentState.UNDEPLOYING)
            try:
                self._runtime.stop(agent_id=identity.runtime_id)
            except Exception as exc:  # noqa: BLE001
                self._transition(record, previous)
                return self._failed(IntentKind.UNDEPLOY, record, exc)
            record.container = None
            record.config = None

            if store is None:
                self._transition(record, AgentState.NOT_DEPLOYED)
                _LOGGER.info("Kept store resource %s for reuse", resource_name)
                return self._result(IntentKind.UNDEPLOY, record, ok=True)

            provisioner = self._provisioner_for(store)
            try:
                record.resource_state = provisioner.drop(
                    resource_name, store.admin_credentials
                )
            except Exception as exc:  # noqa: BLE001
                record.resource_state = provisioner.ledger.get(resource_name)
                self._transition(record, AgentState.NOT_DEPLOYED)
                warning = _partial_failure(exception_to_error(exc), resource_name)
                _LOGGER.warning(warning.message)
                return self._result(
                    IntentKind.UNDEPLOY, record, ok=True, warnings=[warning]
                )
            self._transition(record, AgentState.DELETED)
            return self._result(IntentKind.UNDEPLOY, record, ok=True)

    @public_api_logged(
        logger=_LOGGER,
        component_id=SERVICE_COMPONENT_ID,
        id_fields=("identity",),
    )
    def status(self, *, identity: AgentIdentity) -> AgentStatus:
        resource_name = resource_name_for(identity)
        with self._records_lock:
            record = self._records.get(resource_name)
            if record is None:
                return AgentStatus(
                    identity=identity,
                    state=AgentState.NOT_DEPLOYED,
                    resource_name=resource_name,
                    resource_state=ResourceState.ABSENT,
                )
            return AgentStatus(
                identity=record.identity,
                state=record.state,
                resource_name=record.resource_name,
                resource_state=record.resource_state,
                container=record.container,
                updated_at=record.updated_at,
            )

    def _start(
        self,
        intent: IntentKind,
        record: _AgentRecord,
        store: ResolvedStore,
        config: AgentConfig,
        cancel: Event,
    ) -> LifecycleResult:
        """Start the agent, stopping any partial container when start fails."""
        if cancel.is_set():
            self._transition(record, AgentState.NOT_DEPLOYED)
            return self._failed(
                intent,
                record,
                ProvisioningCancelledError(
                    f"{intent.value} of {record.identity} cancelled before start"
                ),
            )
        try:
            handle = self._runtime.start(
                agent_id=record.identity.runtime_id,
                connection_descriptor=store.connection_descriptor(record.resource_name),
                env_overrides=config.env,
                image=config.image,
                labels=config.labels,
            )
        except Exception as exc:  # noqa: BLE001
            self._stop_partial(record)
            record.container = None
            self._transition(record, AgentState.NOT_DEPLOYED)
            return self._failed(intent, record, exc)

        record.container = handle
        record.config = config
        self._transition(record, AgentState.RUNNING)
        return self._result(intent, record, ok=True)

    def _stop_partial(self, record: _AgentRecord) -> None:
        try:
            self._runtime.stop(agent_id=record.identity.runtime_id)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error(
                "Could not stop partially started agent %s: %s", record.identity, exc
            )

    def _provisioner_for(self, store: ResolvedStore) -> Provisioner:
        """Return one provisioner per store so its ledger outlives each intent."""
        key = f"{store.mode.value}:{store.endpoint or store.local_data_dir}"
        with self._provisioners_lock:
            provisioner = self._provisioners.get(key)
            if provisioner is None:
                provisioner = self._provisioner_factory(store)
                self._provisioners[key] = provisioner
            return provisioner

    def _record(self, identity: AgentIdentity, resource_name: str) -> _AgentRecord:
        """Return the record for one agent, adopting a container left running
        by an earlier process the first time the identity is seen.

        Callers hold the intent lock for ``resource_name``.
        """
        with self._records_lock:
            record = self._records.get(resource_name)
        if record is not None:
            return record

        record = _AgentRecord(identity=identity, resource_name=resource_name)
        handle = self._runtime.find(agent_id=identity.runtime_id)
        if handle is not None:
            _LOGGER.info("Adopting running container %s for %s", handle.name, identity)
            record.state = AgentState.RUNNING
            record.container = handle
        with self._records_lock:
            return self._records.setdefault(resource_name, record)

    def _signal_cancel(self, resource_name: str) -> None:
        with self._records_lock:
            record = self._records.get(resource_name)
            cancel = record.cancel if record is not None else None
        if cancel is not None:
            _LOGGER.info("Cancelling in-flight intent for %s", resource_name)
            cancel.set()

    def _transition(self, record: _AgentRecord, state: AgentState) -> None:
        with log_context({fields.STATE: state.value}):
            _LOGGER.debug(
                "Agent %s: %s -> %s", record.identity, record.state.value, state.value
            )
        record.state = state
        record.updated_at = datetime.now(UTC)

    def _log_fields(
        self, intent: IntentKind, identity: AgentIdentity, resource_name: str
    ) -> dict[str, object]:
        return {
            fields.INTENT: intent.value,
            fields.NAMESPACE: identity.namespace,
            fields.AGENT_ID: identity.agent_id,
            fields.RESOURCE_NAME: resource_name,
            fields.MODE: self._selector.mode.value,
        }

    def _result(
        self,
        intent: IntentKind,
        record: _AgentRecord,
        *,
        ok: bool,
        errors: list[ErrorDetail] | None = None,
        warnings: list[ErrorDetail] | None = None,
    ) -> LifecycleResult:
        return LifecycleResult(
            intent=intent,
            identity=record.identity,
            ok=ok,
            state=record.state,
            resource_name=record.resource_name,
            resource_state=record.resource_state,
            errors=errors or [],
            warnings=warnings or [],
        )

    def _failed(
        self, intent: IntentKind, record: _AgentRecord, exc: Exception
    ) -> LifecycleResult:
        detail = exception_to_error(exc)
        _LOGGER.error("%s of %s failed: %s", intent.value, record.identity, detail.message)
        return self._result(intent, record, ok=False, errors=[detail])

    def _rejected(
        self, intent: IntentKind, identity: AgentIdentity, exc: FleetError
    ) -> LifecycleResult:
        """Report a failure raised before any action ran."""
        with self._records_lock:
            record = next(
                (item for item in self._records.values() if item.identity == identity),
                None,
            )
        return LifecycleResult(
            intent=intent,
            identity=identity,
            ok=False,
            state=record.state if record is not None else AgentState.NOT_DEPLOYED,
            resource_name=record.resource_name if record is not None else None,
            resource_state=record.resource_state if record is not None else None,
            errors=[exc.to_error()],
        )


def _partial_failure(cause: ErrorDetail, resource_name: str) -> ErrorDetail:
    return dependency_error(
        f"agent stopped but cleanup of {resource_name} failed: {cause.message}",
        code=codes.PARTIAL_FAILURE,
        retryable=cause.retryable,
        metadata={**cause.metadata, "cause": cause.code},
    )
