"""
tests/test_web.py -- Integration tests for the front-end page and app-level HTTP behavior.

Covers:
  - GET / renders the page without authentication, wired to /api
  - unknown routes and methods use the error envelope
  - untrusted Host headers are rejected by TrustedHostMiddleware
  - the OpenAPI schema documents the error envelope on every router
"""

from __future__ import annotations


def test_index_renders(api_client):
    client, _token, _uid = api_client
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    body = resp.text
    assert "<title>EventDesk</title>" in body
    assert 'const API = "/api";' in body
    assert 'id="login-form"' in body


def test_unknown_route_uses_envelope(api_client):
    client, _token, _uid = api_client
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "http_404"


def test_wrong_method_uses_envelope(api_client):
    client, _token, _uid = api_client
    resp = client.patch("/api/health")
    assert resp.status_code == 405
    assert resp.json()["error"]["code"] == "http_405"


def test_untrusted_host_rejected(api_client):
    client, _token, _uid = api_client
    resp = client.get("/api/health", headers={"Host": "evil.example.com"})
    assert resp.status_code == 400


def test_openapi_documents_error_envelope(api_client):
    client, _token, _uid = api_client
    schema = client.get("/openapi.json").json()
    assert '{"error": {"code", "message", "detail"}}' in schema["info"]["description"]
    assert "ErrorResponse" in schema["components"]["schemas"]
    for path, method, status in [
        ("/api/register", "post", "400"),
        ("/api/events", "get", "401"),
        ("/api/tasks/{task_id}", "get", "404"),
    ]:
        content = schema["paths"][path][method]["responses"][status]["content"]
        assert content["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
