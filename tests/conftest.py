"""Test fixtures for the shortlink application."""

import pytest
from typing import Generator
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.shortlink.core.config import Settings
from src.shortlink.main import create_app

from utils import register


@pytest.fixture
def settings() -> Settings:
    """Settings for an in-memory SQLite store with the cache disabled."""
    return Settings(
        DATABASE_URL="sqlite://",
        JWT_SECRET="test-secret",
        REDIS_URL="",
        BCRYPT_ROUNDS=4,
    )


@pytest.fixture
def app(settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """TestClient with the lifespan running, so the store is connected."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(client, app):
    """A session on the same store the app uses."""
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


class FakeRedis:
    """Dict-backed stand-in for the redis client."""

    def __init__(self):
        self.data = {}
        self.expiry = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.expiry[key] = ttl

    def delete(self, key):
        self.data.pop(key, None)
        self.expiry.pop(key, None)

    def close(self):
        pass


@pytest.fixture
def fake_redis(client, app) -> FakeRedis:
    cache = FakeRedis()
    app.state.cache = cache
    return cache


@pytest.fixture
def alice_token(client) -> str:
    return register(client, "alice")


@pytest.fixture
def bob_token(client) -> str:
    return register(client, "bob", "hunter2")
