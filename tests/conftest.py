"""Shared fixtures: a clean environment and fake backends."""

from __future__ import annotations

import pytest

from fakes import StaticConfigStore, fake_connector_types

_ENV_VARS = (
    "POSTGRES_URL", "MYSQL_URL", "REDIS_URL", "OPENSEARCH_URL",
    "SKEET_API_KEY", "SKEET_API_URL", "SKEET_CONFIG_PATH", "HTTP_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """No inherited backend URLs, and no stray skeet.config.json in cwd."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def connector_types():
    return fake_connector_types()


@pytest.fixture
def make_store():
    return StaticConfigStore
