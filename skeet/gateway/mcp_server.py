"""MCP stdio transport — serves the registry's tools and resources."""

from __future__ import annotations

import asyncio
import json
import logging
import signal
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from pydantic import AnyUrl

from skeet.config import SkeetSettings
from skeet.errors import SkeetError
from skeet.observability.metrics import MetricsCollector
from skeet.registry import ServiceRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "skeet-build/skeet-local"


def to_json(result: Any) -> str:
    return json.dumps(result, indent=2, default=str)


def build_server(registry: ServiceRegistry) -> Server:
    """Wire the registry into an MCP server. Tool errors surface as MCP tool errors."""
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(name=t.name, description=t.description, inputSchema=t.input_schema)
            for t in registry.get_tools()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        try:
            result = await registry.execute(name, arguments or {})
        except SkeetError as e:
            logger.warning("Error executing tool %s: %s", name, e.message)
            raise
        return [types.TextContent(type="text", text=to_json(result))]

    @server.list_resources()
    async def list_resources() -> list[types.Resource]:
        return [
            types.Resource(
                uri=AnyUrl(r.uri),
                name=r.name,
                description=r.description or None,
                mimeType=r.mime_type,
            )
            for r in await registry.list_resources()
        ]

    @server.read_resource()
    async def read_resource(uri: AnyUrl) -> str:
        return to_json(await registry.read_resource(str(uri)))

    return server


async def serve_stdio(settings: SkeetSettings) -> None:
    """Run until stdin closes or SIGINT/SIGTERM; always awaits registry shutdown."""
    registry = ServiceRegistry.from_settings(settings, metrics=MetricsCollector())
    server = build_server(registry)

    main_task = asyncio.current_task()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, main_task.cancel)
        except (NotImplementedError, RuntimeError):
            # add_signal_handler is unavailable on Windows event loops
            pass

    logger.info("Starting Skeet Local MCP Server...")
    if settings.skeet_api_key:
        logger.info("Skeet API key detected; remote configuration from %s", settings.skeet_api_url)
    else:
        logger.info("No Skeet API key found; running in local-only mode")

    try:
        if not await registry.initialize():
            logger.warning("Service registry initialization had issues")
        logger.info("MCP server is ready to handle requests")
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    except asyncio.CancelledError:
        logger.info("Shutting down Skeet Local MCP Server...")
    finally:
        await registry.shutdown()
