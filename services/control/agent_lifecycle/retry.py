"""Bounded exponential backoff for store connectivity failures."""

from __future__ import annotations

import time
from threading import Event
from typing import Callable, TypeVar

from packages.fleet_shared.errors import ConnectivityError, ProvisioningCancelledError
from packages.fleet_shared.logging import fields, get_logger, log_context
from services.control.agent_lifecycle.config import RetrySettings

_LOGGER = get_logger(__name__)

T = TypeVar("T")


def backoff_delay(settings: RetrySettings, attempt: int) -> float:
    """Return the sleep before retry number ``attempt`` (1-based)."""
    delay = settings.base_delay_seconds * (settings.multiplier ** (attempt - 1))
    return min(delay, settings.max_delay_seconds)


def call_with_retry(
    operation: Callable[[], T],
    *,
    settings: RetrySettings,
    step: str,
    sleeper: Callable[[float], None] = time.sleep,
    cancel: Event | None = None,
) -> T:
    """Run ``operation``, retrying only ``ConnectivityError``.

    Every other exception propagates on its first occurrence. The last
    connectivity failure propagates once attempts are exhausted. With a
    ``cancel`` event, backoff waits on the event instead of ``sleeper`` and a
    cancel during the wait raises ``ProvisioningCancelledError``.
    """
    attempt = 1
    while True:
        try:
            return operation()
        except ConnectivityError as exc:
            if attempt >= settings.attempts:
                _LOGGER.error(
                    "Store unreachable; giving up on %s after %d attempts",
                    step,
                    attempt,
                )
                raise
            delay = backoff_delay(settings, attempt)
            with log_context(
                {
                    fields.STEP: step,
                    fields.ATTEMPT: attempt,
                    fields.MAX_ATTEMPTS: settings.attempts,
                }
            ):
                _LOGGER.warning(
                    "Store unreachable during %s; retrying in %.2fs: %s",
                    step,
                    delay,
                    exc,
                )
            if cancel is None:
                sleeper(delay)
            elif cancel.wait(delay):
                raise ProvisioningCancelledError(
                    f"{step} cancelled while waiting to retry"
                ) from exc
            attempt += 1
