"""
tests/conftest.py -- Shared test fixtures for Audit Monitor integration tests.

This module provides:
  - make_test_stores(): creates isolated in-memory DBs for auth + tracker
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus one JWT per built-in role

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment variables must be set before any auth/core import:
  DEBUG=true             -- get_settings() auto-generates SECRET_KEY
  ALLOWED_HOSTS          -- TestClient sends Host: testserver
  LOGIN_RATE_LIMIT       -- tests log in far more often than 10/minute
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set these before any auth/core import so get_settings() picks them up.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.policy import ROLES, build_policy
from auth.store import UserStore
from auth.tokens import claims_for, create_access_token
from storage.local import LocalFileStorage
from tracker.store import TrackerStore

TEST_PASSWORD = "testpass123"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def memory_url(name: str) -> str:
    return f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true"


def make_test_stores(db_suffix: str) -> tuple[UserStore, TrackerStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (the test module name is used).
    """
    user_store = UserStore(db_url=memory_url(f"test_auth_{db_suffix}"))
    tracker = TrackerStore(db_url=memory_url(f"test_tracker_{db_suffix}"))
    return user_store, tracker


def _patch_lifespan(user_store: UserStore, tracker: TrackerStore, storage: LocalFileStorage):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs and a temporary upload directory.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.policy = build_policy()
        app.state.user_store = user_store
        app.state.tracker = tracker
        app.state.storage = storage
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request, tmp_path_factory) -> Generator[tuple[TestClient, dict, dict], None, None]:
    """Yield (client, tokens, user_ids) for API integration tests.

    One user per built-in role is created before the client starts, e.g.
    tokens["Admin"], user_ids["Viewer"]. Emails are <role>@example.com in
    lowercase; every password is TEST_PASSWORD.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    user_store, tracker = make_test_stores(suffix)
    storage = LocalFileStorage(str(tmp_path_factory.mktemp(f"uploads_{suffix}")), max_bytes=1024 * 1024)

    tokens: dict[str, str] = {}
    user_ids: dict[str, int] = {}
    for role_name in ROLES:
        role = user_store.get_role_by_name(role_name)
        user = user_store.create_user(
            name=f"Test {role_name}",
            email=f"{role_name.lower()}@example.com",
            password=TEST_PASSWORD,
            role_id=role.id,
        )
        user_ids[role_name] = user.id
        tokens[role_name] = create_access_token(claims_for(user), expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store, tracker, storage)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, tokens, user_ids

    user_store.close()
    tracker.close()

