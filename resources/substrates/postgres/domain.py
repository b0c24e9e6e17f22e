"""Endpoint and credential value types for administrative store access."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class StoreEndpoint(BaseModel):
    """Network location of one Postgres server."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    host: str
    port: int = Field(default=5432, gt=0, lt=65536)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class StoreCredentials(BaseModel):
    """One login role and its password; the password never renders."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    user: str
    password: SecretStr

    def secret_values(self) -> tuple[str, ...]:
        """Return raw secret values for message scrubbing."""
        return (self.password.get_secret_value(),)
