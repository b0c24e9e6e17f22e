"""Settings models for the lifecycle controller.

Component settings live under ``components.<kind>.<name>`` where kind is one
of ``service``, ``adapter`` or ``substrate``. The root model only groups the
raw mappings; each component validates its own subtree through
``resolve_component_settings`` with its own pydantic model.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, ClassVar, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "fleet" / "fleet.yaml"

_KINDS: tuple[str, ...] = ("service", "adapter", "substrate")

_Subtree = dict[str, dict[str, Any]]

TComponentSettings = TypeVar("TComponentSettings", bound=BaseModel)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str = "fleet"
    environment: str = "dev"


class ComponentsSettings(BaseModel):
    """Raw per-component mappings, keyed by kind then component name."""

    model_config = ConfigDict(extra="forbid")

    service: _Subtree = Field(default_factory=dict)
    adapter: _Subtree = Field(default_factory=dict)
    substrate: _Subtree = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _require_grouped_keys(cls, value: object) -> object:
        if not isinstance(value, dict):
            return value
        for key in value:
            kind, sep, name = str(key).partition("_")
            if sep and kind in _KINDS:
                raise ValueError(
                    f"components.{key} is not allowed; "
                    f"move it to components.{kind}.{name}"
                )
        return value

    def subtree(self, kind: str, name: str) -> dict[str, Any]:
        return dict(getattr(self, kind).get(name) or {})


class FleetSettings(BaseSettings):
    """Frozen root settings.

    Precedence, highest first: constructor arguments, ``FLEET_*`` environment
    variables (``__`` separates nesting levels), the YAML file, then the
    defaults declared here.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLEET_",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
        nested_model_default_partial_update=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    components: ComponentsSettings = Field(default_factory=ComponentsSettings)

    _config_path: ClassVar[Path] = DEFAULT_CONFIG_PATH

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # No .env or secrets-dir support; credentials come from env or YAML.
        yaml_source = YamlConfigSettingsSource(
            settings_cls, yaml_file=cls._config_path, yaml_file_encoding="utf-8"
        )
        return init_settings, env_settings, yaml_source

    @classmethod
    def with_config_path(cls, path: Path) -> type[FleetSettings]:
        """Subclass reading its YAML layer from ``path`` instead of the default."""

        class _AtPath(cls):  # type: ignore[valid-type, misc]
            _config_path: ClassVar[Path] = path

        return _AtPath


def resolve_component_settings(
    *,
    settings: FleetSettings,
    component_id: str,
    model: type[TComponentSettings],
) -> TComponentSettings:
    """Validate the subtree for ``component_id`` (e.g. ``substrate_postgres``).

    A component with no configured subtree gets ``model``'s defaults.
    """
    kind, sep, name = component_id.partition("_")
    if not sep or not name or kind not in _KINDS:
        raise ValueError(
            f"component id {component_id!r} needs a kind prefix "
            f"({', '.join(_KINDS)}) followed by '_<name>'"
        )
    return model.model_validate(settings.components.subtree(kind, name))
