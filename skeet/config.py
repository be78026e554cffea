"""Process settings loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

DEFAULT_CONFIG_FILENAME = "skeet.config.json"
DEFAULT_API_URL = "https://skeet.sh/api/integrations"


class SkeetSettings(BaseSettings):
    # Server
    host: str = "127.0.0.1"
    port: int = 8350
    log_level: str = "INFO"
    http_api_key: str = ""

    # Direct connection URLs (environment layer)
    postgres_url: str = ""
    mysql_url: str = ""
    redis_url: str = ""
    opensearch_url: str = ""

    # Config file layer
    skeet_config_path: str = ""

    # Remote authority layer
    skeet_api_url: str = DEFAULT_API_URL
    skeet_api_key: str = ""

    # Timeouts (seconds)
    remote_timeout: float = 10.0
    connect_timeout: float = 10.0
    query_timeout: float = 30.0

    def config_path(self) -> Path:
        """File layer location: SKEET_CONFIG_PATH or ./skeet.config.json."""
        if self.skeet_config_path:
            return Path(self.skeet_config_path)
        return Path.cwd() / DEFAULT_CONFIG_FILENAME

    def env_urls(self) -> dict[str, str]:
        return {
            "postgres": self.postgres_url,
            "mysql": self.mysql_url,
            "redis": self.redis_url,
            "opensearch": self.opensearch_url,
        }
