"""
tests/conftest.py -- Shared test fixtures for EventDesk integration tests.

This module provides:
  - make_token_service(): TokenService with a fixed test key and optional clock
  - _make_test_stores(): isolated named shared-memory SQLite stores per module
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: (client, token, user_id) with a pre-registered user and token
  - blank_client: (client, tokens) with empty stores, one per test

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares one
in-memory instance across all connections in the same process.

Environment must be set before any app import: api/main.py and
api/routes/auth.py read Settings at import time (TrustedHost list, rate
limits), and get_settings() needs DEBUG to auto-generate a SECRET_KEY.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost", "127.0.0.1"]')
os.environ.setdefault("REGISTER_RATE_LIMIT", "1000/minute")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.credentials import register_user
from auth.store import MemoryUserStore, SQLUserStore, UserStore
from auth.tokens import Clock, KeyRing, TokenService, utcnow
from resources.graph import ResourceGraph
from resources.store import MemoryResourceStore, ResourceStore, SQLResourceStore

TEST_KEY = "test-signing-key-0123456789abcdef0123456789"
TEST_USERNAME = "testuser"
TEST_PASSWORD = "testpass123"


def make_token_service(clock: Clock = utcnow, key: str = TEST_KEY) -> TokenService:
    return TokenService(KeyRing(key), expire_seconds=3600, clock=clock)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, ResourceStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (the module name is used).
    """
    auth_url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    resources_url = f"sqlite:///file:test_resources_{db_suffix}?mode=memory&cache=shared&uri=true"
    return SQLUserStore(auth_url), SQLResourceStore(resources_url)


def _patch_lifespan(user_store: UserStore, resource_store: ResourceStore, tokens: TokenService):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores and a fixed-key TokenService into app.state
    so TestClient routes never touch eventdesk.db or the Settings key.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.resource_store = resource_store
        app.state.graph = ResourceGraph(resource_store)
        app.state.tokens = tokens
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The real FastAPI app runs with a patched lifespan: real route handlers,
    real middleware, isolated SQL stores. One client per test module, so
    records created by earlier tests in the same module are still there.
    """
    user_store, resource_store = _make_test_stores(request.module.__name__.replace(".", "_"))
    tokens = make_token_service()

    uid = register_user(user_store, TEST_USERNAME, TEST_PASSWORD)
    token = tokens.issue(uid, TEST_USERNAME)

    app.router.lifespan_context = _patch_lifespan(user_store, resource_store, tokens)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    resource_store.close()
    user_store.close()


@pytest.fixture
def blank_client() -> Generator[tuple[TestClient, TokenService], None, None]:
    """Yield (client, tokens) backed by empty in-memory stores.

    For scenarios that assert on exact list contents.
    """
    tokens = make_token_service()
    app.router.lifespan_context = _patch_lifespan(MemoryUserStore(), MemoryResourceStore(), tokens)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, tokens
