"""Tests for error bodies, configuration and application wiring."""

import asyncio
import logging

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from src.shortlink import main as main_module
from src.shortlink.api.endpoints import links as links_endpoint
from src.shortlink.core.config import DummyRedis, Settings, get_redis

from utils import register


class TestErrorBodies:
    def test_malformed_json(self, client):
        response = client.post(
            "/api/user/register",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"msg": "Invalid request body"}

    def test_body_of_wrong_type(self, client):
        response = client.post("/api/user/login", json=["alice", "secret1"])

        assert response.status_code == 400
        assert response.json() == {"msg": "Invalid request body"}

    def test_unknown_route(self, client):
        response = client.get("/api/does/not/exist")

        assert response.status_code == 404
        assert response.json() == {"msg": "Not Found"}

    def test_wrong_method(self, client):
        response = client.put("/api/url")

        assert response.status_code == 405
        assert response.json() == {"msg": "Method Not Allowed"}

    def test_store_failure_is_hidden(self, client, alice_token, monkeypatch):
        def broken(db, user_id):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr(links_endpoint, "list_links_by_owner", broken)

        response = client.get("/api/url", headers={"x-auth-token": alice_token})

        assert response.status_code == 500
        assert response.json() == {"msg": "Server error"}


class TestUnexpectedErrors:
    @pytest.fixture
    def quiet_client(self, app):
        with TestClient(app, raise_server_exceptions=False) as test_client:
            yield test_client

    def test_unexpected_exception_gives_json_500(self, quiet_client, monkeypatch):
        def broken(db, user_id):
            raise RuntimeError("boom")

        monkeypatch.setattr(links_endpoint, "list_links_by_owner", broken)
        token = register(quiet_client, "alice")

        response = quiet_client.get("/api/url", headers={"x-auth-token": token})

        assert response.status_code == 500
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {"msg": "Server error"}

    def test_nul_in_password_gives_json_500(self, quiet_client):
        response = quiet_client.post(
            "/api/user/register", json={"username": "alice", "password": "a\u0000b"}
        )

        assert response.status_code == 500
        assert response.json() == {"msg": "Server error"}


class TestSettings:
    def test_allowed_origins_are_split(self):
        settings = Settings(ALLOWED_ORIGINS="http://localhost:3000, https://app.example.com,")

        assert settings.allowed_origins == ["http://localhost:3000", "https://app.example.com"]

    def test_settings_read_environment(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "from-env")
        monkeypatch.setenv("PORT", "8080")

        settings = Settings()

        assert settings.JWT_SECRET == "from-env"
        assert settings.PORT == 8080

    def test_defaults(self, monkeypatch):
        for name in ("ACCESS_TOKEN_EXPIRE_SECONDS", "SHORT_CODE_LENGTH", "BCRYPT_ROUNDS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings()

        assert settings.ACCESS_TOKEN_EXPIRE_SECONDS == 3600
        assert settings.SHORT_CODE_LENGTH == 6
        assert settings.BCRYPT_ROUNDS == 10


class TestRedisConnection:
    def test_no_url_gives_dummy(self):
        assert isinstance(get_redis(Settings(REDIS_URL="")), DummyRedis)

    def test_unreachable_redis_gives_dummy(self):
        settings = Settings(
            REDIS_URL="redis://127.0.0.1:1/0", REDIS_RETRY_ATTEMPTS=1, REDIS_RETRY_DELAY=0
        )

        assert isinstance(get_redis(settings), DummyRedis)


def test_lifespan_wires_store_and_cache(client, app):
    assert app.state.session_factory is not None
    assert isinstance(app.state.cache, DummyRedis)


def test_lifespan_connects_redis_off_the_event_loop(app, monkeypatch):
    seen = {}

    def recording_get_redis(settings):
        try:
            asyncio.get_running_loop()
            seen["on_loop"] = True
        except RuntimeError:
            seen["on_loop"] = False
        return DummyRedis()

    monkeypatch.setattr(main_module, "get_redis", recording_get_redis)

    with TestClient(app):
        pass

    assert seen == {"on_loop": False}

def test_cors_allows_auth_header(client):
    response = client.options(
        "/api/url",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "x-auth-token",
        },
    )

    assert response.status_code == 200
    assert "x-auth-token" in response.headers["access-control-allow-headers"].lower()


class TestRequestLogging:
    def test_logs_status_and_caller_without_token(self, client, alice_token, caplog):
        with caplog.at_level(logging.INFO, logger="shortlink.web"):
            client.get("/api/url", headers={"x-auth-token": alice_token})

        lines = [r.getMessage() for r in caplog.records if r.name == "shortlink.web"]
        assert any(line.startswith("GET /api/url 200 ") and "caller=token" in line for line in lines)
        assert all(alice_token not in line for line in lines)

    def test_client_errors_logged_as_warning(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="shortlink.web"):
            client.get("/nosuch")

        records = [r for r in caplog.records if r.name == "shortlink.web"]
        assert records[-1].levelno == logging.WARNING
        assert "caller=anonymous" in records[-1].getMessage()
