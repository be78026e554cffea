"""HTTP REST transport — tool listing and invocation over FastAPI."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from skeet.errors import (
    CommandNotAllowed,
    InvalidToolArguments,
    QueryTimeout,
    RegistryClosed,
    ServiceNotInitialized,
    SkeetError,
    UnknownResource,
    UnknownTool,
    UpstreamQueryError,
)
from skeet.gateway.auth import validate_api_key
from skeet.registry import ServiceRegistry

logger = logging.getLogger(__name__)

# Most specific first: QueryTimeout is an UpstreamQueryError
_STATUS_BY_ERROR: list[tuple[type[SkeetError], int]] = [
    (UnknownTool, 404),
    (UnknownResource, 404),
    (InvalidToolArguments, 422),
    (CommandNotAllowed, 403),
    (ServiceNotInitialized, 503),
    (RegistryClosed, 503),
    (QueryTimeout, 504),
    (UpstreamQueryError, 502),
]


class ToolCallRequest(BaseModel):
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolCallResponse(BaseModel):
    tool: str
    result: Any = None


def get_registry(request: Request) -> ServiceRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(503, "Gateway not initialized")
    return registry


def require_api_key(request: Request, x_api_key: str = Header(default="")) -> None:
    expected = getattr(request.app.state.settings, "http_api_key", "")
    if expected and not validate_api_key(x_api_key, expected):
        raise HTTPException(401, "Invalid API key")


def error_status(error: SkeetError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


router = APIRouter(prefix="/api/v1", tags=["api"], dependencies=[Depends(require_api_key)])


@router.get("/tools")
async def list_tools(registry: ServiceRegistry = Depends(get_registry)) -> dict:
    return {"tools": [t.to_dict() for t in registry.get_tools()]}


@router.post("/tools/{name}", response_model=ToolCallResponse)
async def call_tool(name: str, req: ToolCallRequest, registry: ServiceRegistry = Depends(get_registry)):
    try:
        result = await registry.execute(name, req.arguments)
    except SkeetError as e:
        logger.warning("Tool %s failed: %s", name, e.message)
        raise HTTPException(error_status(e), e.to_dict()["error"]) from e
    return ToolCallResponse(tool=name, result=jsonable_encoder(result))


@router.get("/services")
async def list_services(registry: ServiceRegistry = Depends(get_registry)) -> dict:
    return {
        "state": registry.state.value,
        "apiIntegrated": registry.api_integrated,
        "activeServices": registry.get_active_services(),
    }


@router.get("/resources")
async def list_resources(registry: ServiceRegistry = Depends(get_registry)) -> dict:
    resources = await registry.list_resources()
    return {"resources": [r.model_dump() for r in resources]}


@router.get("/resources/read")
async def read_resource(uri: str, registry: ServiceRegistry = Depends(get_registry)) -> dict:
    try:
        data = await registry.read_resource(uri)
    except SkeetError as e:
        raise HTTPException(error_status(e), e.to_dict()["error"]) from e
    return {"uri": uri, "contents": jsonable_encoder(data)}
