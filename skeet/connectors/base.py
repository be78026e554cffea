"""Service connector abstraction."""

from __future__ import annotations

import abc
import logging
from collections.abc import Awaitable, Callable
from typing import Any, ClassVar
from urllib.parse import urlsplit, urlunsplit

from skeet.errors import ConnectionFailed, InvalidToolArguments, ServiceNotInitialized, UnknownResource, UnknownTool
from skeet.models import ServiceConfig
from skeet.tools import ResourceDeclaration, ToolDeclaration
from skeet.types import ServiceKind

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Awaitable[Any]]


def redact_dsn(dsn: str) -> str:
    """Drop credentials from a connection URL for logging."""
    try:
        parts = urlsplit(dsn)
    except ValueError:
        return "<unparsable dsn>"
    if not parts.netloc or "@" not in parts.netloc:
        return dsn
    host = parts.netloc.rsplit("@", 1)[-1]
    return urlunsplit((parts.scheme, f"***@{host}", parts.path, "", ""))


class ServiceConnector(abc.ABC):
    """Owns exactly one backend handle and the tools that use it.

    ``initialize()`` never raises: any failure during handle construction or
    the liveness probe becomes a ``False`` return with ``error`` set.
    ``shutdown()`` never raises and is safe to repeat.
    """

    kind: ClassVar[ServiceKind]
    TOOLS: ClassVar[tuple[ToolDeclaration, ...]] = ()

    def __init__(self, config: ServiceConfig) -> None:
        self._config = config
        self._initialized = False
        self.error: ConnectionFailed | None = None

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def initialized(self) -> bool:
        return self._initialized

    def name(self) -> str:
        return self.kind.value

    # -- Lifecycle --

    async def initialize(self) -> bool:
        if self._initialized:
            return True

        source = self._config.connection_source()
        if not source:
            self.error = ConnectionFailed(self.name(), "no connection dsn or url configured")
            logger.error("%s", self.error)
            return False

        if self._config.connection and self._config.connection.dsn:
            logger.info("Using %s connection %r at %s", self.name(), self._config.connection.name, redact_dsn(source))
        else:
            logger.info("Using %s url %s", self.name(), redact_dsn(source))

        try:
            await self._connect(source)
            await self._probe()
        except Exception as e:
            self.error = ConnectionFailed(self.name(), str(e) or type(e).__name__)
            logger.warning("Failed to initialize %s: %s", self.name(), self.error.reason)
            await self._release()
            return False

        self.error = None
        self._initialized = True
        logger.info("%s connection established", self.name())
        return True

    async def shutdown(self) -> None:
        self._initialized = False
        await self._release()

    async def _release(self) -> None:
        try:
            await self._close()
        except Exception:
            logger.exception("Error closing %s connection", self.name())

    @abc.abstractmethod
    async def _connect(self, dsn: str) -> None:
        """Create the backend handle."""

    @abc.abstractmethod
    async def _probe(self) -> None:
        """One cheap liveness round trip; raise on failure."""

    @abc.abstractmethod
    async def _close(self) -> None:
        """Release the handle if one exists and forget it."""

    # -- Tools --

    def get_tools(self) -> list[ToolDeclaration]:
        return list(self.TOOLS)

    @abc.abstractmethod
    def _handlers(self) -> dict[str, ToolHandler]:
        """Tool name -> coroutine taking the validated arguments as keywords."""

    async def execute(self, tool_name: str, args: dict[str, Any] | None = None) -> Any:
        declaration = next((t for t in self.TOOLS if t.name == tool_name), None)
        handler = self._handlers().get(tool_name)
        if declaration is None or handler is None:
            raise UnknownTool(tool_name)
        if not self._initialized:
            raise ServiceNotInitialized(self.name())
        return await handler(**declaration.validate_arguments(args))

    # -- Resources --

    def resource_uri(self, path: str) -> str:
        return f"skeet://{self.kind.value}/{path}"

    async def list_resources(self) -> list[ResourceDeclaration]:
        return []

    async def read_resource(self, path: str) -> Any:
        raise UnknownResource(f"No resource {self.resource_uri(path)}")

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise ServiceNotInitialized(self.name())

    # -- Health --

    async def health_check(self) -> dict:
        if not self._initialized:
            return {"status": "disabled"}
        try:
            await self._probe()
            return {"status": "healthy"}
        except Exception as e:
            return {"status": "unhealthy", "error": str(e)}


def split_resource_path(path: str, prefix: str) -> str:
    """``tables/users`` with prefix ``tables`` -> ``users``."""
    head, _, rest = path.partition("/")
    if head != prefix or not rest:
        raise UnknownResource(f"Unknown resource path: {path}")
    return rest


def require_text(value: str, label: str) -> str:
    if not value.strip():
        raise InvalidToolArguments(f"{label} must not be empty")
    return value
