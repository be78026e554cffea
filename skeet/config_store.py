"""Layered service configuration: environment < config file < remote authority."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from skeet.config import SkeetSettings
from skeet.errors import ConfigUnavailable, RemoteConfigError
from skeet.models import (
    ConnectionDescriptor,
    RemoteIntegration,
    RemoteIntegrations,
    ServiceConfig,
    SkeetConfig,
)
from skeet.remote import RemoteConfigFetcher
from skeet.types import ServiceKind

logger = logging.getLogger(__name__)

Entries = dict[ServiceKind, ServiceConfig]

_URL_KEYS = ("url", "connection_string", "connectionString")


class ConfigStore:
    """Resolves one ``SkeetConfig`` snapshot per call.

    Every ``resolve()`` starts again from the all-disabled baseline, so nothing
    from an earlier remote response can survive into a later snapshot.
    """

    def __init__(
        self,
        settings: SkeetSettings | None = None,
        fetcher: RemoteConfigFetcher | None = None,
    ) -> None:
        self._settings = settings or SkeetSettings()
        self._fetcher = fetcher or RemoteConfigFetcher(
            self._settings.skeet_api_url,
            self._settings.skeet_api_key,
            timeout=self._settings.remote_timeout,
        )
        self._current = SkeetConfig.baseline()

    @property
    def current(self) -> SkeetConfig:
        """The last resolved snapshot."""
        return self._current

    @property
    def remote_enabled(self) -> bool:
        return self._fetcher.has_credential

    @property
    def config_path(self) -> Path:
        return self._settings.config_path()

    async def resolve(self) -> SkeetConfig:
        entries: Entries = dict(SkeetConfig.baseline().entries())
        try:
            self._apply_env(entries)
            self._apply_file(entries)
            await self._apply_remote(entries)
            try:
                await self.discover_services(entries)
            except Exception:
                logger.exception("Service discovery failed; ignoring its contribution")
            self._enforce_connection_sources(entries)
            snapshot = SkeetConfig.from_entries(entries)
        except Exception:
            logger.exception("Configuration resolution failed; falling back to no backends")
            snapshot = SkeetConfig.baseline()

        enabled = snapshot.enabled_kinds()
        if enabled:
            logger.info("Configuration resolved: %s enabled", ", ".join(k.value for k in enabled))
        else:
            logger.warning(
                "No services were enabled after configuration. Set POSTGRES_URL / MYSQL_URL / "
                "REDIS_URL / OPENSEARCH_URL, provide %s, or configure SKEET_API_KEY.",
                self.config_path,
            )
        self._current = snapshot
        return snapshot

    async def discover_services(self, entries: Entries) -> None:
        """Extension point for auto-discovered services. Contributes nothing by default."""

    # -- Layers --

    def _apply_env(self, entries: Entries) -> None:
        for kind in ServiceKind:
            url = self._settings.env_urls().get(kind.value, "")
            if url:
                entries[kind] = ServiceConfig(enabled=True, connection_string=url)
                logger.debug("Environment enables %s", kind.value)

    def _apply_file(self, entries: Entries) -> None:
        path = self.config_path
        if not path.is_file():
            return

        logger.info("Loading configuration from %s", path)
        try:
            with path.open("r", encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error("Could not parse config file %s: %s", path, e)
            return

        if raw is None:
            return
        if not isinstance(raw, dict):
            logger.error("Config file %s must contain a mapping, got %s", path, type(raw).__name__)
            return

        for kind in ServiceKind:
            if kind.value not in raw:
                continue
            section = raw[kind.value]
            if section is None:
                section = {}
            if not isinstance(section, dict):
                logger.error("Config file entry %r must be a mapping; skipping", kind.value)
                continue
            try:
                entries[kind] = _merge_file_section(entries[kind], section)
            except (ValidationError, TypeError) as e:
                logger.error("Invalid config file entry %r: %s", kind.value, e)

        ignored = sorted(str(k) for k in raw if k not in {kind.value for kind in ServiceKind})
        if ignored:
            logger.warning("Ignoring unknown services in %s: %s", path, ", ".join(ignored))

    async def _apply_remote(self, entries: Entries) -> None:
        if not self._fetcher.has_credential:
            return
        try:
            data = await self._fetcher.fetch()
        except RemoteConfigError as e:
            logger.error("%s; continuing without remote configuration", e)
            return
        if data is None:
            logger.error("Remote authority returned no configuration; check SKEET_API_KEY and SKEET_API_URL")
            return

        try:
            payload = RemoteIntegrations.model_validate(data)
        except ValidationError as e:
            logger.error("Remote configuration has an unexpected shape: %s", e)
            return
        if payload.integrations is None:
            logger.error("No integrations found in the remote configuration response")
            return

        for kind in ServiceKind:
            section = payload.integrations.get(kind.value)
            if section is None:
                continue
            try:
                integration = RemoteIntegration.model_validate(section)
            except ValidationError as e:
                logger.error("Remote %s integration has an unexpected shape; ignoring it: %s", kind.value, e)
                continue
            primary = integration.primary()
            if primary is None:
                if integration.connections:
                    logger.info("Remote lists %s connections but none is primary; leaving as is", kind.value)
                continue
            if not primary.dsn:
                logger.warning("Remote primary %s connection %r has no dsn; skipping", kind.value, primary.name)
                continue
            entries[kind] = ServiceConfig(enabled=True, connection_string=primary.dsn, connection=primary)
            logger.info("Configured primary %s connection: %s", kind.value, primary.name or "(unnamed)")

    def _enforce_connection_sources(self, entries: Entries) -> None:
        for kind, cfg in entries.items():
            if cfg.enabled and not cfg.connection_source():
                error = ConfigUnavailable(f"{kind.value} is enabled but has no connection url or dsn")
                logger.warning("%s; disabling", error.message)
                entries[kind] = cfg.model_copy(update={"enabled": False})


def _merge_file_section(current: ServiceConfig, section: dict[str, Any]) -> ServiceConfig:
    """Overlay the fields a file section sets; presence forces ``enabled``."""
    update: dict[str, Any] = {"enabled": True}

    for key in _URL_KEYS:
        if key in section:
            update["connection_string"] = section[key] or None
            break

    if "options" in section:
        options = section["options"] or {}
        if not isinstance(options, dict):
            raise TypeError("'options' must be a mapping")
        options = dict(options)
        connection = options.pop("connection", None)
        update["options"] = options
        update["connection"] = (
            ConnectionDescriptor.model_validate(connection) if connection is not None else None
        )

    return ServiceConfig.model_validate({**current.model_dump(), **update})
