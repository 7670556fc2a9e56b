"""
tests/conftest.py -- Shared test fixtures for wuzzlmoasta.

This module provides:
  - make_store(): an isolated in-memory CredentialStore with alice/bob/mallory
  - FakeClock: a settable clock for expiry tests
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - web_client: TestClient with follow_redirects=False for web route tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool, and the concurrency
tests call the store from many threads. Plain :memory: DBs are per-connection
and would present a blank schema to each worker thread.

Password hashes here use bcrypt cost 4 so tests that log in many times stay
fast. verify() accepts any cost factor.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# High enough that the suite never trips it; TestLoginRateLimit lowers it per test.
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import bcrypt
import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import install_auth
from asgi import app
from auth.models import User
from auth.sessions import SessionRegistry
from auth.store import CredentialStore

ALICE_PASSWORD = "secret1"
BOB_PASSWORD = "hunter22"
MALLORY_PASSWORD = "letmein!"


def fast_hash(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


def make_store() -> CredentialStore:
    """Create a store in a fresh named shared-memory database and provision test users.

    alice   -- active, display name "Alice Example"
    bob     -- active, no display name
    mallory -- inactive; correct password must still be refused
    """
    store = CredentialStore(db_url=f"sqlite:///file:test_users_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    store.create_user(User(username="alice", display_name="Alice Example", hashed_password=fast_hash(ALICE_PASSWORD)))
    store.create_user(User(username="bob", hashed_password=fast_hash(BOB_PASSWORD)))
    store.create_user(User(username="mallory", hashed_password=fast_hash(MALLORY_PASSWORD), is_active=False))
    return store


class FakeClock:
    """Callable clock for SessionRegistry; advance() moves time forward."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def credential_store() -> Generator[CredentialStore, None, None]:
    store = make_store()
    yield store
    store.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def _patch_lifespan(credentials: CredentialStore, registry: SessionRegistry):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state through the same install_auth()
    the production lifespan uses, so routes see exactly the production wiring.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        install_auth(app, credentials, registry)
        yield

    return test_lifespan


@pytest.fixture
def web_client(credential_store: CredentialStore) -> Generator[tuple[TestClient, SessionRegistry], None, None]:
    """Yield (client, registry) for web route integration tests.

    follow_redirects=False is essential: we assert on redirect *locations*
    (e.g. 302 to /login), which are invisible once the client follows them.
    Function-scoped so every test starts with an empty cookie jar and an
    empty registry.
    """
    registry = SessionRegistry()
    app.router.lifespan_context = _patch_lifespan(credential_store, registry)
    limiter.reset()

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, registry
