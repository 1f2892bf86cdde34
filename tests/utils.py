"""Test helpers for shortlink tests."""

import base64
import json

from fastapi.testclient import TestClient


def register(client: TestClient, username: str, password: str = "secret1") -> str:
    """Register a user through the API and return its token."""
    response = client.post(
        "/api/user/register", json={"username": username, "password": password}
    )
    assert response.status_code == 200, response.text
    return response.json()["token"]


def shorten(client: TestClient, token: str, original_url: str) -> str:
    """Shorten a URL through the API and return the short code."""
    response = client.post(
        "/api/url/shorten",
        json={"originalUrl": original_url},
        headers={"x-auth-token": token},
    )
    assert response.status_code == 200, response.text
    return response.json()["shortUrl"]


def swap_token_payload(token: str, payload: dict) -> str:
    """Replace the payload segment of a JWT while keeping the old signature."""
    header, _, signature = token.split(".")
    body = base64.urlsafe_b64encode(json.dumps(payload).encode()).rstrip(b"=").decode()
    return f"{header}.{body}.{signature}"
