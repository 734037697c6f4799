"""
tests/conftest.py -- Shared test fixtures for the inventory service.

This module provides:
  - FakeClock / clock: a settable epoch-seconds clock for token tests
  - frozen_time: freezegun-frozen wall clock for the limits-backed RateLimiter
  - SlowStore, BrokenTokens: collaborators that time out or fail to sign
  - make_settings(): Settings with a fixed secret and the cheapest allowed bcrypt cost
  - _make_test_stores(): isolated in-memory DBs for credentials + inventory
  - _patch_lifespan(): wires test services into app.state, bypassing real startup
  - api_client: TestClient against the real app with a generous rate limit
  - strict_limiter: swaps in the production 10/60s limiter for one test
  - swap_auth_service: installs a differently wired AuthService for one test

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient and AuthService run store calls in worker threads. Plain
:memory: DBs are per-connection and would present a blank schema to each
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

SECRET_KEY must be set before any api/ import so get_settings() succeeds for
code paths that read it.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from datetime import timedelta

# CRITICAL: set before importing api.main.
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-chars")

import pytest
from fastapi.testclient import TestClient
from freezegun import freeze_time

from api.main import app, close_state, init_state
from auth.errors import ConfigError
from auth.models import Credential
from auth.ratelimit import RateLimiter
from auth.service import AuthService
from auth.store import CredentialStore
from core.config import Settings, load_settings
from inventory.store import ItemStore

TEST_SECRET = "unit-test-signing-secret-0123456789abcdef"


class FakeClock:
    """Callable clock returning a settable number of epoch seconds."""

    def __init__(self, now: float = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def frozen_time() -> Generator[Callable[[float], None], None, None]:
    """Freeze time.time() and yield an advance(seconds) function.

    The limits memory storage reads time.time() directly. The frozen instant
    is far in the future so the storage's background expiry thread, which
    freezegun leaves on the real clock, never evicts a live test window.
    """
    with freeze_time("2100-01-01 00:00:00") as frozen:

        def advance(seconds: float) -> None:
            frozen.tick(timedelta(seconds=seconds))

        yield advance


class SlowStore:
    """Delegates to a real store after sleeping, to simulate an overloaded backend."""

    def __init__(self, inner: CredentialStore, delay: float, slow_lookup: bool = True) -> None:
        self.inner = inner
        self.delay = delay
        self.slow_lookup = slow_lookup

    def find_by_username(self, username: str):
        if self.slow_lookup:
            time.sleep(self.delay)
        return self.inner.find_by_username(username)

    def insert(self, credential: Credential) -> int:
        time.sleep(self.delay)
        return self.inner.insert(credential)

    def count(self) -> int:
        return self.inner.count()


class BrokenTokens:
    """Stands in for a TokenService whose secret vanished after startup."""

    ttl_seconds = 60

    def issue(self, subject: str) -> str:
        raise ConfigError("token signing secret is not configured")


def make_settings(**overrides) -> Settings:
    values = {
        "secret_key": TEST_SECRET,
        "bcrypt_rounds": 10,
        "rate_limit_requests": 10_000,
        "auth_timeout_seconds": 10.0,
        "database_url": "sqlite:///:memory:",
    }
    values.update(overrides)
    return load_settings(**values)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[CredentialStore, ItemStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api', 'ratelimit').
    """
    url = f"sqlite:///file:test_inventory_{db_suffix}?mode=memory&cache=shared&uri=true"
    return CredentialStore(url), ItemStore(url)


def _patch_lifespan(settings: Settings, credential_store: CredentialStore, item_store: ItemStore):
    """Return an async context manager that replaces the real lifespan.

    Builds the services from test settings around pre-created stores.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        init_state(app, settings, credential_store=credential_store, item_store=item_store)
        yield
        close_state(app)

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[TestClient, None, None]:
    """Yield a TestClient running the real app against in-memory stores.

    Each test module gets its own databases, named after the module.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    credential_store, item_store = _make_test_stores(suffix)
    original = app.router.lifespan_context
    app.router.lifespan_context = _patch_lifespan(make_settings(), credential_store, item_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    app.router.lifespan_context = original


@pytest.fixture
def strict_limiter(api_client: TestClient) -> Generator[RateLimiter, None, None]:
    """Install the default 10 requests / 60 s limiter for the duration of one test."""
    relaxed = app.state.rate_limiter
    limiter = RateLimiter(limit=10, window_seconds=60)
    app.state.rate_limiter = limiter
    yield limiter
    app.state.rate_limiter = relaxed


def signup_and_token(client: TestClient, username: str, password: str) -> str:
    resp = client.post("/api/v1/auth/signup", json={"username": username, "password": password})
    assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
    return resp.json()["token"]


@pytest.fixture
def swap_auth_service(api_client: TestClient) -> Generator[Callable[[AuthService], None], None, None]:
    """Yield install(service); the app's own AuthService is restored afterwards."""
    original = app.state.auth_service
    installed: list[AuthService] = []

    def install(service: AuthService) -> None:
        installed.append(service)
        app.state.auth_service = service

    yield install
    app.state.auth_service = original
    for service in installed:
        service.close()
