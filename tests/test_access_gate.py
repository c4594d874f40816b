"""
tests/test_access_gate.py -- Integration tests for the token gate on protected routes.

The Authorization header carries the raw token. Transitions:
  no header / empty header       -> 401 missing_token
  malformed, foreign or expired  -> 403 invalid_token
  "Bearer <token>"               -> 403 (the prefix is not parsed)
  valid token                    -> request proceeds

Fixtures used (from conftest.py):
  - api_client: (client, token, uid)
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from auth.tokens import utcnow
from conftest import TEST_USERNAME, make_token_service

PROTECTED = [
    ("get", "/api/me"),
    ("get", "/api/events"),
    ("post", "/api/events"),
    ("get", "/api/events/1"),
    ("put", "/api/events/1"),
    ("delete", "/api/events/1"),
    ("get", "/api/attendees"),
    ("post", "/api/attendees"),
    ("get", "/api/tasks"),
    ("post", "/api/tasks"),
    ("get", "/api/events/1/tasks"),
    ("delete", "/api/tasks/1"),
]


def _call(client: TestClient, method: str, path: str, headers: dict | None = None):
    if method in ("post", "put"):
        return client.request(method.upper(), path, json={}, headers=headers or {})
    return client.request(method.upper(), path, headers=headers or {})


class TestMissingToken:
    @pytest.mark.parametrize("method,path", PROTECTED)
    def test_no_header_is_401(self, api_client, method, path):
        client, _token, _uid = api_client
        resp = _call(client, method, path)
        assert resp.status_code == 401, f"{method.upper()} {path}: {resp.text}"
        assert resp.json()["error"]["code"] == "missing_token"

    def test_empty_header_is_401(self, api_client):
        client, _token, _uid = api_client
        resp = client.get("/api/events", headers={"Authorization": ""})
        assert resp.status_code == 401


class TestInvalidToken:
    @pytest.mark.parametrize("method,path", PROTECTED)
    def test_garbage_is_403(self, api_client, method, path):
        client, _token, _uid = api_client
        resp = _call(client, method, path, {"Authorization": "garbage"})
        assert resp.status_code == 403, f"{method.upper()} {path}: {resp.text}"
        assert resp.json()["error"] == {"code": "invalid_token", "message": "Invalid token.", "detail": None}

    def test_bearer_prefix_is_403(self, api_client):
        client, token, _uid = api_client
        resp = client.get("/api/events", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 403

    def test_expired_token_is_403(self, api_client):
        client, _token, uid = api_client
        issued_long_ago = make_token_service(clock=lambda: utcnow() - timedelta(hours=2))
        expired = issued_long_ago.issue(uid, TEST_USERNAME)
        resp = client.get("/api/events", headers={"Authorization": expired})
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "Token has expired."

    def test_foreign_key_is_403(self, api_client):
        client, _token, uid = api_client
        foreign = make_token_service(key="x" * 40).issue(uid, TEST_USERNAME)
        resp = client.get("/api/events", headers={"Authorization": foreign})
        assert resp.status_code == 403


class TestValidToken:
    def test_list_events(self, api_client):
        client, token, _uid = api_client
        resp = client.get("/api/events", headers={"Authorization": token})
        assert resp.status_code == 200
        assert isinstance(resp.json(), list)

    def test_me(self, api_client):
        client, token, uid = api_client
        resp = client.get("/api/me", headers={"Authorization": token})
        assert resp.status_code == 200
        data = resp.json()
        assert data["user_id"] == uid
        assert data["username"] == TEST_USERNAME
        assert "expires_at" in data


class TestPublicRoutes:
    def test_health_needs_no_token(self, api_client):
        client, _token, _uid = api_client
        assert client.get("/api/health").status_code == 200

    def test_login_needs_no_token(self, api_client):
        client, _token, _uid = api_client
        resp = client.post("/api/login", json={"username": "nobody", "password": "x"})
        assert resp.status_code == 400
