"""Entry point for reading settings.

``FLEET_LOGGING__LEVEL=DEBUG`` sets ``logging.level``;
``FLEET_COMPONENTS__SUBSTRATE__POSTGRES__HOST=db`` sets the postgres host.
Explicit ``cli_params`` beat the environment, which beats the YAML file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from .models import FleetSettings


def load_settings(
    *,
    cli_params: Mapping[str, Any] | None = None,
    config_path: str | Path | None = None,
) -> FleetSettings:
    settings_cls = FleetSettings
    if config_path is not None:
        settings_cls = FleetSettings.with_config_path(Path(config_path).expanduser())
    return settings_cls(**dict(cli_params or {}))
