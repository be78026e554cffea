"""Test the MCP server handlers without a stdio transport."""

import json

import mcp.types as types
import pytest
import pytest_asyncio

from fakes import StaticConfigStore, snapshot
from skeet.gateway.mcp_server import SERVER_NAME, build_server
from skeet.registry import ServiceRegistry
from skeet.tools import REFRESH_TOOL_NAME


@pytest_asyncio.fixture
async def server(connector_types):
    registry = ServiceRegistry(StaticConfigStore(snapshot(mysql="mysql://db")), connector_types)
    await registry.initialize()
    yield build_server(registry)
    await registry.shutdown()


def _call(name, arguments):
    return types.CallToolRequest(
        method="tools/call", params=types.CallToolRequestParams(name=name, arguments=arguments),
    )


@pytest.mark.asyncio
async def test_lists_registry_tools(server):
    assert server.name == SERVER_NAME
    handler = server.request_handlers[types.ListToolsRequest]
    result = await handler(types.ListToolsRequest(method="tools/list"))
    tools = {t.name: t for t in result.root.tools}
    assert list(tools) == ["mysql_query", REFRESH_TOOL_NAME]
    assert tools["mysql_query"].inputSchema["required"] == ["sql"]


@pytest.mark.asyncio
async def test_call_tool_returns_json_text(server):
    handler = server.request_handlers[types.CallToolRequest]
    result = await handler(_call("mysql_query", {"sql": "select 1"}))
    assert result.root.isError is False
    payload = json.loads(result.root.content[0].text)
    assert payload["args"] == {"sql": "select 1"}


@pytest.mark.asyncio
async def test_call_tool_errors_are_tool_errors(server):
    handler = server.request_handlers[types.CallToolRequest]
    result = await handler(_call("redis_get", {"key": "k"}))
    assert result.root.isError is True
    assert "redis service not initialized" in result.root.content[0].text
