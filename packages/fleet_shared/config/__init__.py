"""Layered settings: constructor overrides, ``FLEET_*`` env, YAML, defaults."""

from .loader import load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    ComponentsSettings,
    FleetSettings,
    LoggingSettings,
    resolve_component_settings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ComponentsSettings",
    "FleetSettings",
    "LoggingSettings",
    "load_settings",
    "resolve_component_settings",
]
