"""Unit tests for settings."""

import pytest

from src.config.settings import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keeps the host environment out of the settings."""
    for name in ["REDIS_HOST", "REDIS_PORT", "REDIS_AUTH", "REDIS_PASSWORD", "ROOM_REGISTRY_DB"]:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.room_registry_db == 1
    assert settings.redis_url == "redis://localhost:6379"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("REDIS_HOST", "cache")
    monkeypatch.setenv("ROOM_REGISTRY_DB", "4")

    settings = Settings(_env_file=None)

    assert settings.redis_host == "cache"
    assert settings.room_registry_db == 4


def test_password_only_used_with_auth():
    without_auth = Settings(_env_file=None, redis_password="secret")
    with_auth = Settings(_env_file=None, redis_auth=True, redis_password="secret")

    assert "secret" not in without_auth.redis_url
    assert with_auth.redis_url == "redis://:secret@localhost:6379"
