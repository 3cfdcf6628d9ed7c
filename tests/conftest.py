"""
tests/conftest.py -- Shared test fixtures for the Onushilon backend.

This module provides:
  - store / credentials / tokens: isolated unit-test building blocks
  - accounts / admin / resets:    services wired on top of them
  - make_user:                    factory that registers a user directly in the store
  - api_client:                   TestClient with an admin JWT for API integration tests

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

bcrypt runs at cost 4 everywhere in the suite; cost 12 would make every
register/login take a quarter of a second.

The DEBUG env var must be set before any api/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, wire_services
from auth.accounts import AccountService
from auth.admin import AdminService
from auth.credentials import CredentialStore
from auth.mailer import DeliveryError, Mailer
from auth.models import User
from auth.reset import PasswordResetService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters"
TEST_ROUNDS = 4

ADMIN_EMAIL = "testadmin@example.com"
ADMIN_PASSWORD = "AdminPass1"

# Counters are process-wide; the suite logs in far more than 10 times a minute.
limiter.enabled = False


class FakeMailer(Mailer):
    """Records every OTP instead of sending it. Set fail=True to simulate a dead relay."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send_otp(self, email: str, otp: str) -> None:
        if self.fail:
            raise DeliveryError("relay unavailable")
        self.sent.append((email, otp))

    @property
    def last_otp(self) -> str:
        return self.sent[-1][1]


class FakeClock:
    """Manually advanced replacement for time.time()."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def run(coro):
    """Drive a service coroutine from a synchronous test."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Unit-test building blocks
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def credentials() -> CredentialStore:
    return CredentialStore(rounds=TEST_ROUNDS)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SECRET, ttl_seconds=3600)


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def accounts(store, credentials, tokens) -> AccountService:
    return AccountService(store, credentials, tokens)


@pytest.fixture
def admin(store) -> AdminService:
    return AdminService(store)


@pytest.fixture
def resets(store, credentials, mailer, clock) -> PasswordResetService:
    return PasswordResetService(store, credentials, mailer, otp_ttl_seconds=600, clock=clock)


@pytest.fixture
def make_user(store, credentials):
    """Return a factory that inserts a user and returns it (without its hash)."""
    counter = {"n": 0}

    def _make(
        name: str = "Test User",
        email: str | None = None,
        phone: str | None = None,
        age: int = 30,
        password: str = "Secret1",
        role: str = "user",
        is_active: bool = True,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            name=name,
            email=email or f"user{n}@example.com",
            phone=phone or f"555000{n:04d}",
            age=age,
            role=role,
            is_active=is_active,
        )
        credentials.set_password(user, password)
        store.create_user(user)
        user.hashed_password = None
        return user

    return _make


# ---------------------------------------------------------------------------
# API integration client
# ---------------------------------------------------------------------------


def _patch_lifespan(store: UserStore, mailer: FakeMailer):
    """Return an async context manager that replaces the real lifespan.

    Wires the shared services onto the pre-created test store so TestClient
    routes see an isolated DB, bcrypt at test cost and the fake mailer.
    """
    settings = get_settings().model_copy(
        update={"bcrypt_rounds": TEST_ROUNDS, "secret_key": TEST_SECRET, "token_expire_seconds": 3600}
    )

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, settings, store, mailer)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, str], None, None]:
    """Yield (client, token, admin_id) for API integration tests.

    The admin user is created before the client starts and the JWT is issued
    for use in Authorization headers. The fake mailer is reachable at
    client.app.state.resets.mailer.
    """
    db_name = request.module.__name__.replace(".", "_")
    store = UserStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    credentials = CredentialStore(rounds=TEST_ROUNDS)

    admin_user = User(name="Test Admin", email=ADMIN_EMAIL, phone="5550000001", age=40, role="admin")
    credentials.set_password(admin_user, ADMIN_PASSWORD)
    uid = store.create_user(admin_user)

    token = TokenService(TEST_SECRET, ttl_seconds=3600).issue(uid)

    app.router.lifespan_context = _patch_lifespan(store, FakeMailer())

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    store.close()


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
