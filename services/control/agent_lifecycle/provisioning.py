"""Idempotent creation and removal of per-agent store resources.

``ProvisioningExecutor`` drives the fixed administrative step sequence
against an ``AdminStore``; ``LocalFileProvisioner`` satisfies the same
contract for the sqlite file driver. Both record resource state in a
``ResourceLedger`` and serialize work per resource name.
"""

from __future__ import annotations

import time
from pathlib import Path
from threading import Event, Lock
from typing import Callable, Protocol

from packages.fleet_shared.errors import ConfigurationError, ProvisioningCancelledError
from packages.fleet_shared.logging import fields, get_logger, log_context
from resources.substrates.postgres import (
    AdminOutcome,
    AdminStatement,
    AdminStore,
    StoreCredentials,
)
from resources.substrates.postgres.statements import (
    create_database,
    create_role,
    drop_database,
    drop_role,
    grant_privileges,
    set_default_privileges,
)
from services.control.agent_lifecycle.config import RetrySettings
from services.control.agent_lifecycle.domain import ResourceState
from services.control.agent_lifecycle.locks import KeyedLocks
from services.control.agent_lifecycle.retry import call_with_retry

_LOGGER = get_logger(__name__)


class ResourceLedger:
    """Thread-safe record of the last known state of each resource."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._states: dict[str, ResourceState] = {}

    def get(self, resource_name: str) -> ResourceState:
        with self._lock:
            return self._states.get(resource_name, ResourceState.ABSENT)

    def set(self, resource_name: str, state: ResourceState) -> None:
        with self._lock:
            self._states[resource_name] = state


class Provisioner(Protocol):
    """Contract shared by store-backed and file-backed provisioners."""

    @property
    def ledger(self) -> ResourceLedger: ...

    def ensure_exists(
        self,
        resource_name: str,
        admin_credentials: StoreCredentials | None,
        app_credentials: StoreCredentials | None,
        *,
        cancel: Event | None = None,
    ) -> ResourceState:
        """Make the resource Ready; repeated calls have no further effect."""

    def drop(
        self,
        resource_name: str,
        admin_credentials: StoreCredentials | None,
    ) -> ResourceState:
        """Remove the resource; dropping a missing resource succeeds."""


class ProvisioningExecutor(Provisioner):
    """Create or drop one role/database pair per agent through an admin store."""

    def __init__(
        self,
        *,
        store: AdminStore,
        retry: RetrySettings,
        ledger: ResourceLedger | None = None,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._retry = retry
        self._ledger = ledger or ResourceLedger()
        self._sleeper = sleeper
        self._locks = KeyedLocks()

    @property
    def ledger(self) -> ResourceLedger:
        return self._ledger

    def ensure_exists(
        self,
        resource_name: str,
        admin_credentials: StoreCredentials | None,
        app_credentials: StoreCredentials | None,
        *,
        cancel: Event | None = None,
    ) -> ResourceState:
        if admin_credentials is None or app_credentials is None:
            raise ConfigurationError(
                f"provisioning {resource_name} requires administrative and "
                "application credentials",
                field="admin_credentials",
            )

        with self._locks.hold(resource_name), log_context(
            {fields.RESOURCE_NAME: resource_name}
        ):
            if self._ledger.get(resource_name) is ResourceState.READY:
                if self._confirm_ready(
                    resource_name, admin_credentials, app_credentials
                ):
                    with log_context({fields.EVENT: fields.IDEMPOTENCE_HIT_EVENT}):
                        _LOGGER.info("Resource %s already ready", resource_name)
                    return ResourceState.READY
                _LOGGER.warning(
                    "Resource %s recorded ready but missing; recreating",
                    resource_name,
                )

            self._ledger.set(resource_name, ResourceState.CREATING)
            steps = (
                create_role(resource_name, app_credentials.password),
                create_database(resource_name),
                grant_privileges(resource_name),
                set_default_privileges(resource_name),
            )
            for statement in steps:
                if cancel is not None and cancel.is_set():
                    _LOGGER.warning(
                        "Provisioning of %s cancelled before %s",
                        resource_name,
                        statement.operation.value,
                    )
                    raise ProvisioningCancelledError(
                        f"provisioning of {resource_name} cancelled",
                        metadata={"resource_name": resource_name},
                    )
                self._run_step(statement, admin_credentials, cancel=cancel)

            self._ledger.set(resource_name, ResourceState.READY)
            _LOGGER.info("Resource %s ready", resource_name)
            return ResourceState.READY

    def drop(
        self,
        resource_name: str,
        admin_credentials: StoreCredentials | None,
    ) -> ResourceState:
        if admin_credentials is None:
            raise ConfigurationError(
                f"dropping {resource_name} requires administrative credentials",
                field="admin_credentials",
            )

        with self._locks.hold(resource_name), log_context(
            {fields.RESOURCE_NAME: resource_name}
        ):
            self._ledger.set(resource_name, ResourceState.DELETING)
            for statement in (drop_database(resource_name), drop_role(resource_name)):
                self._run_step(statement, admin_credentials)
            self._ledger.set(resource_name, ResourceState.DELETED)
            _LOGGER.info("Resource %s deleted", resource_name)
            return ResourceState.DELETED

    def _run_step(
        self,
        statement: AdminStatement,
        admin_credentials: StoreCredentials,
        *,
        cancel: Event | None = None,
    ) -> AdminOutcome:
        step = statement.operation.value

        def attempt() -> AdminOutcome:
            with self._store.session(
                admin_credentials, database=statement.target_database
            ) as session:
                return session.execute(statement)

        outcome = call_with_retry(
            attempt,
            settings=self._retry,
            step=step,
            sleeper=self._sleeper,
            cancel=cancel,
        )
        with log_context({fields.STEP: step, fields.OUTCOME: outcome.value}):
            if outcome is AdminOutcome.APPLIED:
                _LOGGER.info("Applied %s", step)
            else:
                with log_context({fields.EVENT: fields.IDEMPOTENCE_HIT_EVENT}):
                    _LOGGER.info("Skipped %s: %s", step, outcome.value)
        return outcome

    def _confirm_ready(
        self,
        resource_name: str,
        admin_credentials: StoreCredentials,
        app_credentials: StoreCredentials,
    ) -> bool:
        """Probe the catalogs read-only for the role and the database."""
        targets = (
            create_role(resource_name, app_credentials.password),
            create_database(resource_name),
        )

        def probe() -> bool:
            with self._store.session(admin_credentials) as session:
                return all(session.exists(target) for target in targets)

        return call_with_retry(
            probe, settings=self._retry, step="confirm_ready", sleeper=self._sleeper
        )


class LocalFileProvisioner(Provisioner):
    """Provision sqlite-file storage under one local data directory."""

    def __init__(
        self,
        *,
        data_dir: Path,
        ledger: ResourceLedger | None = None,
    ) -> None:
        self._data_dir = data_dir
        self._ledger = ledger or ResourceLedger()
        self._locks = KeyedLocks()

    @property
    def ledger(self) -> ResourceLedger:
        return self._ledger

    def database_path(self, resource_name: str) -> Path:
        return self._data_dir / f"{resource_name}.db"

    def ensure_exists(
        self,
        resource_name: str,
        admin_credentials: StoreCredentials | None,
        app_credentials: StoreCredentials | None,
        *,
        cancel: Event | None = None,
    ) -> ResourceState:
        del admin_credentials, app_credentials
        with self._locks.hold(resource_name):
            if cancel is not None and cancel.is_set():
                raise ProvisioningCancelledError(
                    f"provisioning of {resource_name} cancelled",
                    metadata={"resource_name": resource_name},
                )
            self._data_dir.mkdir(parents=True, exist_ok=True)
            self._ledger.set(resource_name, ResourceState.READY)
            return ResourceState.READY

    def drop(
        self,
        resource_name: str,
        admin_credentials: StoreCredentials | None,
    ) -> ResourceState:
        del admin_credentials
        with self._locks.hold(resource_name):
            self._ledger.set(resource_name, ResourceState.DELETING)
            self.database_path(resource_name).unlink(missing_ok=True)
            self._ledger.set(resource_name, ResourceState.DELETED)
            _LOGGER.info("Removed local store for %s", resource_name)
            return ResourceState.DELETED
