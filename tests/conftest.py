"""
tests/conftest.py -- Shared test fixtures for ThingGate.

This module provides:
  - default_principal / granted_principal: plain Principals for unit tests
  - thing_repo: ThingRepository over a private in-memory SQLite DB
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus tokens for the default and a granted principal

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the HTTP fixtures because TestClient runs sync route handlers in a thread
pool. Plain :memory: DBs are per-connection and would present a blank schema
to each worker thread.

DEBUG and ALLOWED_HOSTS must be set before any auth/core import so
get_settings() auto-generates SECRET_KEY and TrustedHostMiddleware accepts
TestClient's "testserver" host.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.identity import IdentityConfig, InMemoryIdentityProvider
from auth.models import Principal
from auth.tokens import create_access_token
from things.store import REQUIRED_ROLE, ThingRepository

DEFAULT_USERNAME = "user"
DEFAULT_PASSWORD = "password"  # noqa: S105 # nosec B105 -- test fixture credential
GRANTED_USERNAME = "auditor"
GRANTED_PASSWORD = "auditor-pass"  # noqa: S105 # nosec B105 -- test fixture credential


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def default_principal() -> Principal:
    """The principal the application configures by default."""
    return Principal(username=DEFAULT_USERNAME, roles=frozenset({"USER"}))


@pytest.fixture
def granted_principal() -> Principal:
    """A principal that holds the role the Thing repository requires."""
    return Principal(username=GRANTED_USERNAME, roles=frozenset({"USER", REQUIRED_ROLE}))


@pytest.fixture
def thing_repo() -> Generator[ThingRepository, None, None]:
    repo = ThingRepository("sqlite:///:memory:")
    yield repo
    repo.close()


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(provider: InMemoryIdentityProvider, repo: ThingRepository):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.identity_provider = provider
        app.state.things = repo
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, str], None, None]:
    """Yield (client, default_token, granted_token) for API integration tests.

    The identity provider holds the default principal ("user", roles USER)
    and a second principal that also holds REQUIRED_ROLE, so both the
    denied and the permitted paths can be exercised over HTTP.
    """
    provider = InMemoryIdentityProvider(
        [
            IdentityConfig(DEFAULT_USERNAME, DEFAULT_PASSWORD, ("USER",)),
            IdentityConfig(GRANTED_USERNAME, GRANTED_PASSWORD, ("USER", REQUIRED_ROLE)),
        ]
    )
    repo = ThingRepository("sqlite:///file:test_things_api?mode=memory&cache=shared&uri=true")

    default_token = create_access_token(DEFAULT_USERNAME, ["USER"], expire_seconds=3600)
    granted_token = create_access_token(GRANTED_USERNAME, ["USER", REQUIRED_ROLE], expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(provider, repo)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, default_token, granted_token

    repo.close()
