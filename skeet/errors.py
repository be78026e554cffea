"""Error taxonomy shared by the registry, connectors and gateways."""

from __future__ import annotations


class SkeetError(Exception):
    """Base class for every error surfaced to a gateway client."""

    code = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class ConfigUnavailable(SkeetError):
    code = "config_unavailable"


class RemoteConfigError(SkeetError):
    code = "remote_config_error"


class ConnectionFailed(SkeetError):
    code = "connection_failed"

    def __init__(self, service: str, reason: str) -> None:
        super().__init__(f"{service} connection failed: {reason}")
        self.service = service
        self.reason = reason


class ServiceNotInitialized(SkeetError):
    code = "service_not_initialized"

    def __init__(self, service: str) -> None:
        super().__init__(f"{service} service not initialized")
        self.service = service


class RegistryClosed(SkeetError):
    code = "registry_closed"


class CommandNotAllowed(SkeetError):
    code = "command_not_allowed"

    def __init__(self, command: str) -> None:
        super().__init__(f'Command "{command}" is not allowed. Only certain commands are permitted.')
        self.command = command


class UnknownTool(SkeetError):
    code = "unknown_tool"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class UnknownResource(SkeetError):
    code = "unknown_resource"


class InvalidToolArguments(SkeetError):
    code = "invalid_arguments"


class UpstreamQueryError(SkeetError):
    """The backend rejected the request; message is the backend's own."""

    code = "upstream_error"


class QueryTimeout(UpstreamQueryError):
    code = "upstream_timeout"
