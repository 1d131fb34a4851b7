"""
tests/conftest.py -- Shared test fixtures for the Grihome auth engine.

This module provides:
  - store: an in-memory AccountStore per test
  - seeded: the store plus a few representative accounts
  - settings: local-environment Settings with the fallback code enabled
  - api_client: TestClient wired to an isolated store via a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

The DEBUG env var must be set before any auth module import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# Set DEBUG before any auth/core import so get_settings() can auto-generate
# SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Account
from auth.service import AuthService
from auth.store import AccountStore
from auth.tokens import hash_password
from core.config import Settings
from tests.helpers import AGENT_PASSWORD, USER_PASSWORD, FakeGateway


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return Settings(debug=True, environment="local")


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = AccountStore("sqlite:///:memory:")
    yield s
    s.close()


@dataclass
class Seeded:
    store: AccountStore
    agent_id: str
    user_id: str
    otp_only_id: str


@pytest.fixture(scope="session")
def agent_hash() -> str:
    return hash_password(AGENT_PASSWORD)


@pytest.fixture(scope="session")
def user_hash() -> str:
    return hash_password(USER_PASSWORD)


@pytest.fixture
def seeded(store: AccountStore, agent_hash: str, user_hash: str) -> Seeded:
    """Store pre-loaded with three accounts.

    agent:    username testuser, phone +911234567890, role AGENT, password set,
              neither channel verified.
    user:     e-mail user@x.com, phone +919876543210, password set, e-mail
              already verified.
    otp-only: e-mail otp@x.com, phone +910000000001, no password.
    """
    agent_id = store.create_account(
        Account(
            email="agent@x.com",
            phone="+911234567890",
            username="testuser",
            name="Test Agent",
            hashed_password=agent_hash,
            role="AGENT",
            company_name="Acme Realty",
            avatar_url="https://cdn.example/agent.png",
        )
    )
    user_id = store.create_account(
        Account(
            email="user@x.com",
            phone="+919876543210",
            username="plainuser",
            name="Plain User",
            hashed_password=user_hash,
            email_verified_at="2026-01-01T00:00:00+00:00",
        )
    )
    otp_only_id = store.create_account(
        Account(
            email="otp@x.com",
            phone="+910000000001",
            name="Code Only",
        )
    )
    return Seeded(store=store, agent_id=agent_id, user_id=user_id, otp_only_id=otp_only_id)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(service: AuthService):
    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_store = service.store
        app.state.auth_service = service
        yield

    return test_lifespan


@dataclass
class ApiHarness:
    client: TestClient
    store: AccountStore
    gateway: FakeGateway
    agent_id: str
    user_id: str


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use an isolated in-memory store and a fake
    OTP gateway. Each test module gets its own database.
    """
    db_name = request.module.__name__.replace(".", "_")
    store = AccountStore(db_url=f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    agent_id = store.create_account(
        Account(
            email="agent@x.com",
            phone="+911234567890",
            username="testuser",
            name="Test Agent",
            hashed_password=hash_password(AGENT_PASSWORD),
            role="AGENT",
            company_name="Acme Realty",
        )
    )
    user_id = store.create_account(
        Account(
            email="user@x.com",
            phone="+919876543210",
            name="Plain User",
            hashed_password=hash_password(USER_PASSWORD),
            email_verified_at="2026-01-01T00:00:00+00:00",
        )
    )
    gateway = FakeGateway()
    service = AuthService(store, gateway=gateway, settings=Settings(debug=True, environment="local"))
    app.router.lifespan_context = _patch_lifespan(service)

    with TestClient(app, raise_server_exceptions=False) as client:
        yield ApiHarness(client=client, store=store, gateway=gateway, agent_id=agent_id, user_id=user_id)

    store.close()
