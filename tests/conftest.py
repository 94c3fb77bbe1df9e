"""
Pytest configuration and shared fixtures for CollabPost tests.

This module provides common fixtures used across all test files:
- The application with in-memory stores wired in through dependency overrides
- A scripted platform HTTP API
- Sign-in helpers and sample content
"""

import os
import sys

import pytest

# Environment setup before any imports
os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_ENABLED"] = "true"
os.environ["SANDBOX_CONNECT_ENABLED"] = "true"
os.environ["APP_URL"] = "http://localhost:3004"
for name in ("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL", "SENTRY_DSN", "REDIS_URL"):
    os.environ.pop(name, None)

# Ensure project root is in path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tests.fakes import (  # noqa: E402
    EDITOR_ID,
    OWNER_ID,
    TEAM_ID,
    VIEWER_ID,
    FakeStores,
    PlatformApi,
)


@pytest.fixture
def app():
    """The server application with a fresh rate limiter; overrides are cleared afterwards."""
    from app.middleware.rate_limiter import InMemoryBackend, RateLimiter
    from server import app as application

    application.state.rate_limiter = RateLimiter(InMemoryBackend())
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def stores(app):
    """In-memory stores behind every store dependency."""
    from app.auth import get_optional_user
    from app.dependencies import (
        get_content_store,
        get_platform_account_store,
        get_share_store,
        get_team_store,
    )

    fakes = FakeStores()
    app.dependency_overrides[get_content_store] = lambda: fakes.content
    app.dependency_overrides[get_team_store] = lambda: fakes.teams
    app.dependency_overrides[get_platform_account_store] = lambda: fakes.accounts
    app.dependency_overrides[get_share_store] = lambda: fakes.share
    # Anonymous unless a test signs someone in
    app.dependency_overrides[get_optional_user] = lambda: None
    return fakes


@pytest.fixture
def platform_api(app, stores):
    """Platform HTTP calls answered by a scripted MockTransport."""
    from app.dependencies import get_platform_registry
    from src.social import build_default_registry

    api = PlatformApi()
    http_client = api.client()
    app.dependency_overrides[get_platform_registry] = lambda: build_default_registry(
        http_client, stores.accounts
    )
    return api


@pytest.fixture
def client(app):
    """FastAPI test client fixture."""
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def sign_in(app):
    """Call with a user id (and optional email) to authenticate later requests."""
    from app.auth import AuthenticatedUser, get_optional_user

    def _sign_in(user_id, email=None):
        user = AuthenticatedUser(id=user_id, email=email)
        app.dependency_overrides[get_optional_user] = lambda: user
        return user

    return _sign_in


@pytest.fixture
def team(stores):
    """A team with an owner, an editor and a viewer."""
    from src.types.team import TeamRole

    return stores.teams.add_team(
        TEAM_ID,
        "acme",
        members={
            OWNER_ID: TeamRole.OWNER,
            EDITOR_ID: TeamRole.EDITOR,
            VIEWER_ID: TeamRole.VIEWER,
        },
    )


@pytest.fixture
def make_content(stores, team):
    """Add a content item owned by the team."""
    from src.types.content import Content

    def _make(content_id="content-1", blocks=None, **fields):
        return stores.content.add(Content(
            id=content_id,
            team_id=TEAM_ID,
            title=fields.pop("title", "Launch notes"),
            blocks=blocks if blocks is not None else [
                {"id": "b1", "type": "text", "content": {"text": "We shipped it."}},
            ],
            member_ids=[OWNER_ID, EDITOR_ID, VIEWER_ID],
            **fields,
        ))

    return _make
