"""Test settings loading."""

from pathlib import Path

from skeet.config import DEFAULT_API_URL, SkeetSettings


def test_default_config():
    config = SkeetSettings()
    assert config.port == 8350
    assert config.skeet_api_url == DEFAULT_API_URL
    assert config.skeet_api_key == ""
    assert config.connect_timeout == 10.0
    assert config.query_timeout == 30.0


def test_env_urls_from_environment(monkeypatch):
    monkeypatch.setenv("POSTGRES_URL", "postgresql://localhost/app")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    config = SkeetSettings()
    assert config.env_urls() == {
        "postgres": "postgresql://localhost/app",
        "mysql": "",
        "redis": "redis://localhost:6379/0",
        "opensearch": "",
    }


def test_config_path_defaults_to_cwd(tmp_path):
    assert SkeetSettings().config_path() == Path.cwd() / "skeet.config.json"


def test_config_path_override(monkeypatch, tmp_path):
    monkeypatch.setenv("SKEET_CONFIG_PATH", str(tmp_path / "custom.json"))
    assert SkeetSettings().config_path() == tmp_path / "custom.json"
