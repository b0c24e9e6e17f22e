"""Shared pytest fixtures isolating settings, logging context, and secrets."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from packages.fleet_shared.config import FleetSettings
from packages.fleet_shared.logging import clear_context, forget_secrets


@pytest.fixture(autouse=True)
def _isolated_fleet_environment(monkeypatch: Any, tmp_path: Path) -> Iterator[None]:
    """Keep host env vars, user config, and process-wide logging state out of tests."""
    for key in list(os.environ):
        if key.startswith("FLEET_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(FleetSettings, "_config_path", tmp_path / "missing-fleet.yaml")

    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    forget_secrets()
    clear_context()
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    forget_secrets()
    clear_context()
