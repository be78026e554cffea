"""Shared enums and type aliases."""

from enum import Enum


class ServiceKind(str, Enum):
    POSTGRES = "postgres"
    MYSQL = "mysql"
    REDIS = "redis"
    OPENSEARCH = "opensearch"


class RegistryState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    REFRESHING = "refreshing"
    SHUTTING_DOWN = "shutting_down"
    SHUTDOWN = "shutdown"
