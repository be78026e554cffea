"""Tool and resource declarations exposed to gateway clients."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from skeet.errors import InvalidToolArguments

ParamType = Literal["string", "number", "integer", "boolean"]


class ToolParameter(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: ParamType = "string"
    required: bool = False
    description: str = ""


class ToolDeclaration(BaseModel):
    """A named operation. Names follow ``<service>_<action>``."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: tuple[ToolParameter, ...] = ()

    @property
    def input_schema(self) -> dict[str, Any]:
        properties: dict[str, Any] = {}
        for param in self.parameters:
            prop: dict[str, Any] = {"type": param.type}
            if param.description:
                prop["description"] = param.description
            properties[param.name] = prop
        schema: dict[str, Any] = {"type": "object", "properties": properties}
        required = [p.name for p in self.parameters if p.required]
        if required:
            schema["required"] = required
        return schema

    def validate_arguments(self, args: dict[str, Any] | None) -> dict[str, Any]:
        """Check required parameters and primitive types.

        Returns only the declared parameters, with numeric strings coerced.
        Undeclared keys are dropped. Raises ``InvalidToolArguments``.
        """
        args = args or {}
        if not isinstance(args, dict):
            raise InvalidToolArguments(f"{self.name}: arguments must be an object")

        missing = [p.name for p in self.parameters if p.required and args.get(p.name) is None]
        if missing:
            raise InvalidToolArguments(f"{self.name}: missing required argument(s): {', '.join(missing)}")

        clean: dict[str, Any] = {}
        for param in self.parameters:
            value = args.get(param.name)
            if value is None:
                continue
            clean[param.name] = _coerce(self.name, param, value)
        return clean

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}


def _coerce(tool: str, param: ToolParameter, value: Any) -> Any:
    try:
        if param.type == "string":
            if isinstance(value, (dict, list)):
                raise TypeError
            return value if isinstance(value, str) else str(value)
        if param.type == "boolean":
            if isinstance(value, bool):
                return value
            raise TypeError
        if isinstance(value, bool):
            raise TypeError
        if param.type == "integer":
            return int(value)
        return value if isinstance(value, (int, float)) else float(value)
    except (TypeError, ValueError):
        raise InvalidToolArguments(f"{tool}: argument '{param.name}' must be of type {param.type}") from None


class ResourceDeclaration(BaseModel):
    model_config = ConfigDict(frozen=True)

    uri: str
    name: str
    description: str = ""
    mime_type: str = "application/json"
    metadata: dict[str, Any] = Field(default_factory=dict)


REFRESH_TOOL_NAME = "refresh_skeet_tools"

REFRESH_TOOL = ToolDeclaration(
    name=REFRESH_TOOL_NAME,
    description="Refreshes the available Skeet tools and configurations",
)
