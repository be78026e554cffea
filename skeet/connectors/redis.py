"""Redis connector — allow-listed commands plus direct GET/SET."""

from __future__ import annotations

import math
import shlex
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from skeet.connectors.base import ServiceConnector, ToolHandler, require_text, split_resource_path
from skeet.errors import CommandNotAllowed, InvalidToolArguments, UpstreamQueryError
from skeet.models import ServiceConfig
from skeet.tools import ResourceDeclaration, ToolDeclaration, ToolParameter
from skeet.types import ServiceKind

READ_COMMANDS = frozenset({
    "GET", "MGET", "STRLEN", "HGET", "HGETALL", "HMGET", "HLEN", "HKEYS", "HVALS",
    "LLEN", "LRANGE", "LINDEX", "SISMEMBER", "SMEMBERS", "SCARD", "ZRANGE", "ZRANGEBYSCORE",
    "ZCARD", "ZSCORE", "ZCOUNT", "KEYS", "TYPE", "TTL", "EXISTS", "INFO", "SCAN",
    "SINTER", "SUNION", "SDIFF", "SRANDMEMBER",
})
SET_WRITE_COMMANDS = frozenset({
    "SADD", "SREM", "SPOP", "SMOVE", "SINTERSTORE", "SUNIONSTORE", "SDIFFSTORE",
})
ALLOWED_COMMANDS = READ_COMMANDS | SET_WRITE_COMMANDS

MAX_LISTED_KEYS = 100


def parse_command(command: str) -> list[str]:
    """Split a command line shell-style and check it against the allow-list."""
    try:
        parts = shlex.split(command)
    except ValueError as e:
        raise InvalidToolArguments(f"redis_query: could not parse command: {e}") from None
    if not parts:
        raise InvalidToolArguments("command must not be empty")
    name = parts[0].upper()
    if name not in ALLOWED_COMMANDS:
        raise CommandNotAllowed(name)
    return [name, *parts[1:]]


def _jsonable(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(_jsonable(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class RedisConnector(ServiceConnector):
    kind = ServiceKind.REDIS
    TOOLS = (
        ToolDeclaration(
            name="redis_query",
            description="Execute Redis commands (primarily read operations)",
            parameters=(ToolParameter(name="command", type="string", required=True),),
        ),
        ToolDeclaration(
            name="redis_get",
            description="Get value for a specific Redis key",
            parameters=(ToolParameter(name="key", type="string", required=True),),
        ),
        ToolDeclaration(
            name="redis_set",
            description="Set value for a specific Redis key",
            parameters=(
                ToolParameter(name="key", type="string", required=True),
                ToolParameter(name="value", type="string", required=True),
                ToolParameter(name="expiry", type="number", description="TTL in seconds"),
            ),
        ),
    )

    def __init__(self, config: ServiceConfig) -> None:
        super().__init__(config)
        self._client: aioredis.Redis | None = None

    async def _connect(self, dsn: str) -> None:
        self._client = aioredis.from_url(dsn, decode_responses=True)

    async def _probe(self) -> None:
        await self._client.ping()

    async def _close(self) -> None:
        if self._client:
            client, self._client = self._client, None
            await client.aclose()

    def _handlers(self) -> dict[str, ToolHandler]:
        return {
            "redis_query": self.run_command,
            "redis_get": self.get,
            "redis_set": self.set,
        }

    async def run_command(self, command: str) -> Any:
        parts = parse_command(command)
        self._require_initialized()
        try:
            return _jsonable(await self._client.execute_command(*parts))
        except RedisError as e:
            raise UpstreamQueryError(str(e)) from e

    async def get(self, key: str) -> str | None:
        require_text(key, "key")
        self._require_initialized()
        try:
            return await self._client.get(key)
        except RedisError as e:
            raise UpstreamQueryError(str(e)) from e

    async def set(self, key: str, value: str, expiry: float | None = None) -> str:
        require_text(key, "key")
        self._require_initialized()
        if expiry is not None and (not math.isfinite(expiry) or expiry <= 0):
            raise InvalidToolArguments("expiry must be a positive number of seconds")
        try:
            # Redis TTLs are whole seconds; round fractions up
            ok = await self._client.set(key, value, ex=math.ceil(expiry) if expiry is not None else None)
        except RedisError as e:
            raise UpstreamQueryError(str(e)) from e
        return "OK" if ok else "NOT SET"

    async def list_resources(self) -> list[ResourceDeclaration]:
        self._require_initialized()
        resources: list[ResourceDeclaration] = []
        async for key in self._client.scan_iter(count=MAX_LISTED_KEYS):
            resources.append(ResourceDeclaration(uri=self.resource_uri(f"keys/{key}"), name=key))
            if len(resources) >= MAX_LISTED_KEYS:
                break
        return resources

    async def read_resource(self, path: str) -> dict[str, Any]:
        key = split_resource_path(path, "keys")
        self._require_initialized()
        kind = await self._client.type(key)
        info: dict[str, Any] = {"key": key, "type": kind}
        if kind == "string":
            info["value"] = await self._client.get(key)
        elif kind == "list":
            info["length"] = await self._client.llen(key)
        elif kind == "set":
            info["members"] = _jsonable(await self._client.smembers(key))
        elif kind == "hash":
            info["fields"] = await self._client.hgetall(key)
        elif kind == "zset":
            info["length"] = await self._client.zcard(key)
        return info
