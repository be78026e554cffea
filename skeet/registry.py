"""Service registry — connector lifecycle, tool aggregation and routing."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

from skeet.config import SkeetSettings
from skeet.config_store import ConfigStore
from skeet.connectors.base import ServiceConnector
from skeet.connectors.mysql import MySQLConnector
from skeet.connectors.opensearch import OpenSearchConnector
from skeet.connectors.postgres import PostgresConnector
from skeet.connectors.redis import RedisConnector
from skeet.errors import (
    QueryTimeout,
    RegistryClosed,
    ServiceNotInitialized,
    SkeetError,
    UnknownResource,
    UnknownTool,
)
from skeet.models import ServiceConfig
from skeet.observability.metrics import MetricsCollector
from skeet.tools import REFRESH_TOOL, REFRESH_TOOL_NAME, ResourceDeclaration, ToolDeclaration
from skeet.types import RegistryState, ServiceKind

logger = logging.getLogger(__name__)

DEFAULT_CONNECTORS: dict[ServiceKind, type[ServiceConnector]] = {
    ServiceKind.POSTGRES: PostgresConnector,
    ServiceKind.MYSQL: MySQLConnector,
    ServiceKind.REDIS: RedisConnector,
    ServiceKind.OPENSEARCH: OpenSearchConnector,
}


class ServiceRegistry:
    """Owns the active connectors and the tool list built from them.

    ``initialize``, ``refresh_services`` and ``shutdown`` hold the lifecycle
    lock for their whole duration. ``execute`` takes it only long enough to
    look up the owning connector, so callers always see a complete connector
    set and a slow query never holds up a refresh.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        connector_types: Mapping[ServiceKind, type[ServiceConnector]] | None = None,
        *,
        connect_timeout: float = 10.0,
        query_timeout: float = 30.0,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._config_store = config_store
        self._connector_types = dict(connector_types if connector_types is not None else DEFAULT_CONNECTORS)
        self._connect_timeout = connect_timeout
        self._query_timeout = query_timeout
        self.metrics = metrics

        self._lock = asyncio.Lock()
        self._state = RegistryState.UNINITIALIZED
        self._connectors: dict[ServiceKind, ServiceConnector] = {}
        self._tools: list[ToolDeclaration] = []
        self._routes = self._build_routes()

    @classmethod
    def from_settings(cls, settings: SkeetSettings, metrics: MetricsCollector | None = None) -> ServiceRegistry:
        return cls(
            ConfigStore(settings),
            connect_timeout=settings.connect_timeout,
            query_timeout=settings.query_timeout,
            metrics=metrics,
        )

    def _build_routes(self) -> dict[str, ServiceKind]:
        routes: dict[str, ServiceKind] = {}
        for kind, connector_cls in self._connector_types.items():
            for tool in connector_cls.TOOLS:
                if tool.name in routes or tool.name == REFRESH_TOOL_NAME:
                    raise ValueError(f"Duplicate tool name {tool.name!r} declared by {connector_cls.__name__}")
                routes[tool.name] = kind
        return routes

    # -- Reads --

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def api_integrated(self) -> bool:
        return self._config_store.remote_enabled

    def get_tools(self) -> list[ToolDeclaration]:
        return list(self._tools)

    def get_active_services(self) -> list[str]:
        return [kind.value for kind in ServiceKind if kind in self._connectors]

    # -- Lifecycle --

    async def initialize(self) -> bool:
        async with self._lock:
            if self._state == RegistryState.READY:
                logger.info("Registry already initialized")
                return True
            return await self._initialize_locked()

    async def refresh_services(self) -> bool:
        async with self._lock:
            if self._state in (RegistryState.SHUTTING_DOWN, RegistryState.SHUTDOWN):
                raise RegistryClosed("Registry has been shut down")
            logger.info("Refreshing Skeet services and tools...")
            self._state = RegistryState.REFRESHING
            await self._shutdown_connectors()
            self._clear()
            success = await self._initialize_locked()
            if self.metrics:
                self.metrics.record_refresh()
            if success:
                logger.info("Services refresh complete: %s", ", ".join(self.get_active_services()) or "none")
            else:
                logger.warning("Services refresh completed with issues")
            return success

    async def shutdown(self) -> None:
        async with self._lock:
            if self._state == RegistryState.SHUTDOWN:
                return
            logger.info("Shutting down active services...")
            self._state = RegistryState.SHUTTING_DOWN
            await self._shutdown_connectors()
            self._clear()
            self._state = RegistryState.SHUTDOWN
            logger.info("All services shut down")

    async def _initialize_locked(self) -> bool:
        try:
            config = await self._config_store.resolve()
            kinds = [k for k in config.enabled_kinds() if k in self._connector_types]
            for kind in config.enabled_kinds():
                if kind not in self._connector_types:
                    logger.warning("No connector registered for %s; skipping", kind.value)

            started = await asyncio.gather(*(self._start_connector(k, config.get(k)) for k in kinds))

            connectors = {kind: conn for kind, conn in zip(kinds, started) if conn is not None}
            # The except branch releases whatever self._connectors holds
            self._connectors = connectors
            tools: list[ToolDeclaration] = []
            for kind in ServiceKind:
                if kind in connectors:
                    tools.extend(connectors[kind].get_tools())
            tools.append(REFRESH_TOOL)

            self._tools = tools
            self._state = RegistryState.READY
        except Exception:
            logger.exception("Error initializing services")
            await self._shutdown_connectors()
            self._clear()
            self._tools = [REFRESH_TOOL]
            self._state = RegistryState.READY
            return False

        active = self.get_active_services()
        if active:
            logger.info("Available services: %s", ", ".join(active))
        else:
            logger.warning("No services are currently active; only %s is available", REFRESH_TOOL_NAME)
        return True

    async def _start_connector(self, kind: ServiceKind, config: ServiceConfig) -> ServiceConnector | None:
        logger.info("Initializing %s service...", kind.value)
        try:
            connector = self._connector_types[kind](config)
        except Exception:
            logger.exception("Could not construct %s connector", kind.value)
            return None
        try:
            ok = await asyncio.wait_for(connector.initialize(), self._connect_timeout)
        except asyncio.TimeoutError:
            logger.warning("%s initialization timed out after %.1fs", kind.value, self._connect_timeout)
            ok = False
        if ok:
            return connector
        logger.warning("%s service initialization failed", kind.value)
        await self._stop_connector(kind, connector)
        return None

    async def _stop_connector(self, kind: ServiceKind, connector: ServiceConnector) -> None:
        try:
            await asyncio.wait_for(connector.shutdown(), self._connect_timeout)
        except asyncio.TimeoutError:
            logger.error("%s shutdown timed out after %.1fs", kind.value, self._connect_timeout)
        except Exception:
            logger.exception("Error shutting down %s", kind.value)

    async def _shutdown_connectors(self) -> None:
        for kind, connector in list(self._connectors.items()):
            await self._stop_connector(kind, connector)
            logger.info("%s service shut down", kind.value)

    def _clear(self) -> None:
        self._connectors = {}
        self._tools = []

    # -- Dispatch --

    async def execute(self, tool_name: str, args: dict[str, Any] | None = None) -> Any:
        logger.info("Executing tool: %s", tool_name)
        start = time.monotonic()
        error_code = ""
        try:
            if tool_name == REFRESH_TOOL_NAME:
                return await self._refresh_tool()
            connector = await self._owner(tool_name)
            try:
                return await asyncio.wait_for(connector.execute(tool_name, args or {}), self._query_timeout)
            except asyncio.TimeoutError:
                raise QueryTimeout(f"{tool_name} timed out after {self._query_timeout:.1f}s") from None
        except SkeetError as e:
            error_code = e.code
            raise
        except Exception:
            error_code = "internal_error"
            raise
        finally:
            if self.metrics:
                self.metrics.record_call(tool_name, int((time.monotonic() - start) * 1000), error_code)

    async def _owner(self, tool_name: str) -> ServiceConnector:
        kind = self._routes.get(tool_name)
        if kind is None:
            raise UnknownTool(tool_name)
        async with self._lock:
            connector = self._connectors.get(kind)
        if connector is None:
            raise ServiceNotInitialized(kind.value)
        return connector

    async def _refresh_tool(self) -> dict[str, Any]:
        success = await self.refresh_services()
        return {
            "status": "success" if success else "error",
            "message": (
                "Successfully refreshed Skeet tools and configurations"
                if success else "Failed to refresh Skeet tools and configurations"
            ),
            "apiIntegrated": self.api_integrated,
            "activeServices": self.get_active_services(),
        }

    # -- Resources --

    async def _snapshot(self) -> dict[ServiceKind, ServiceConnector]:
        async with self._lock:
            return dict(self._connectors)

    async def list_resources(self) -> list[ResourceDeclaration]:
        resources: list[ResourceDeclaration] = []
        for kind, connector in (await self._snapshot()).items():
            try:
                resources.extend(
                    await asyncio.wait_for(connector.list_resources(), self._query_timeout)
                )
            except Exception as e:
                logger.warning("Could not list %s resources: %s", kind.value, e)
        return resources

    async def read_resource(self, uri: str) -> Any:
        parts = urlsplit(uri)
        try:
            kind = ServiceKind(parts.netloc)
        except ValueError:
            raise UnknownResource(f"Unknown resource: {uri}") from None
        if parts.scheme != "skeet" or not parts.path.strip("/"):
            raise UnknownResource(f"Unknown resource: {uri}")

        connector = (await self._snapshot()).get(kind)
        if connector is None:
            raise ServiceNotInitialized(kind.value)
        try:
            return await asyncio.wait_for(connector.read_resource(parts.path.lstrip("/")), self._query_timeout)
        except asyncio.TimeoutError:
            raise QueryTimeout(f"Reading {uri} timed out after {self._query_timeout:.1f}s") from None

    # -- Health --

    async def health(self) -> dict[str, dict]:
        results: dict[str, dict] = {}
        for kind, connector in (await self._snapshot()).items():
            try:
                results[kind.value] = await asyncio.wait_for(connector.health_check(), self._connect_timeout)
            except asyncio.TimeoutError:
                results[kind.value] = {"status": "unhealthy", "error": "health check timed out"}
        return results
