"""Configuration snapshot types and the remote integrations payload."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from skeet.types import ServiceKind


class ConnectionDescriptor(BaseModel):
    """A named connection handed out by the remote authority or the config file."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    dsn: str = ""
    name: str = ""
    is_primary: bool = Field(default=False, validation_alias=AliasChoices("is_primary", "isPrimary"))

    @field_validator("dsn", "name", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("is_primary", mode="before")
    @classmethod
    def _none_as_false(cls, value: Any) -> Any:
        return False if value is None else value


class ServiceConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    connection_string: str | None = None
    connection: ConnectionDescriptor | None = None
    options: dict[str, Any] = Field(default_factory=dict)

    def connection_source(self) -> str | None:
        """Descriptor dsn first, then the plain connection string."""
        if self.connection and self.connection.dsn:
            return self.connection.dsn
        if self.connection_string:
            return self.connection_string
        return None


class SkeetConfig(BaseModel):
    """One resolved snapshot: exactly one entry per well-known service kind."""

    model_config = ConfigDict(frozen=True)

    postgres: ServiceConfig = Field(default_factory=ServiceConfig)
    mysql: ServiceConfig = Field(default_factory=ServiceConfig)
    redis: ServiceConfig = Field(default_factory=ServiceConfig)
    opensearch: ServiceConfig = Field(default_factory=ServiceConfig)

    @classmethod
    def baseline(cls) -> SkeetConfig:
        return cls()

    @classmethod
    def from_entries(cls, entries: dict[ServiceKind, ServiceConfig]) -> SkeetConfig:
        return cls(**{kind.value: cfg for kind, cfg in entries.items()})

    def get(self, kind: ServiceKind) -> ServiceConfig:
        return getattr(self, kind.value)

    def entries(self) -> dict[ServiceKind, ServiceConfig]:
        return {kind: self.get(kind) for kind in ServiceKind}

    def enabled_kinds(self) -> list[ServiceKind]:
        return [kind for kind in ServiceKind if self.get(kind).enabled]


# -- Remote authority payload --
# { "integrations": { "<kind>": { "connections": [ {dsn, name, is_primary}, ... ] } } }


class RemoteIntegration(BaseModel):
    connections: list[ConnectionDescriptor] = Field(default_factory=list)

    @field_validator("connections", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def primary(self) -> ConnectionDescriptor | None:
        return next((c for c in self.connections if c.is_primary), None)


class RemoteIntegrations(BaseModel):
    """Only the envelope is checked here; each known kind is validated on its own."""

    integrations: dict[str, Any] | None = None
