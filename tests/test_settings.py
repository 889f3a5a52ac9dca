"""Tests for settings-derived connection arguments."""

from feedcache.settings import Settings


def test_asyncpg_connect_args_only_carry_timeout(monkeypatch):
    monkeypatch.delenv("DATABASE_CONNECT_TIMEOUT", raising=False)
    settings = Settings(database_url="postgresql://u:p@db.internal:5432/feedcache")

    # No host-based SSL tweaks: the URL alone decides how asyncpg connects.
    assert settings.asyncpg_connect_args == {"timeout": 10.0}
    assert settings.async_database_url.startswith("postgresql+asyncpg://")


def test_connect_timeout_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_CONNECT_TIMEOUT", "2.5")
    assert Settings().asyncpg_connect_args == {"timeout": 2.5}
