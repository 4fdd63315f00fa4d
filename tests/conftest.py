import asyncio
import os

os.environ.setdefault("JWT_SECRET", "test-access-secret-for-the-suite")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-for-the-suite")

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from campus.auth.constants import ROLE_HIERARCHY
from campus.auth.dependencies import get_current_user, get_optional_user
from campus.auth.models import AuthenticatedUser
from campus.db.schema import init_db
from campus.main import app
from campus.settings import settings


@pytest.fixture
def client():
    # No context manager: the lifespan (schema creation) is not run
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def mock_role_hierarchy():
    """Serve the static hierarchy wherever the live one is read."""
    with patch(
        "campus.auth.rbac.get_role_hierarchy",
        new_callable=AsyncMock,
        return_value=dict(ROLE_HIERARCHY),
    ), patch(
        "campus.routes.admin.get_role_hierarchy",
        new_callable=AsyncMock,
        return_value=dict(ROLE_HIERARCHY),
    ):
        yield


@pytest.fixture
def login_as():
    """Authenticate every request as a user holding the given roles."""

    def _login_as(*roles: str, user_id: int = 1, first_name: str = "Test"):
        user = AuthenticatedUser(
            id=user_id,
            email=f"user{user_id}@example.com",
            first_name=first_name,
            last_name="User",
            is_email_verified=True,
            roles=list(roles),
        )
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_optional_user] = lambda: user
        return user

    yield _login_as
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def temp_db(tmp_path, monkeypatch):
    """A real, freshly initialised SQLite database for the test."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "test.sqlite"))
    await init_db()
    yield settings.sqlite_db_path


@pytest.fixture
def app_db(tmp_path, monkeypatch):
    """Same as temp_db, for synchronous TestClient tests."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "app.sqlite"))
    asyncio.run(init_db())
    yield settings.sqlite_db_path


@pytest.fixture
def silent_emails():
    """Drop outgoing emails without scheduling them."""
    targets = [
        "campus.auth.session.dispatch",
        "campus.routes.contact.dispatch",
    ]
    patches = [
        patch(target, side_effect=lambda coro, description: coro.close())
        for target in targets
    ]
    mocks = [p.start() for p in patches]
    yield dict(zip(targets, mocks))
    for p in patches:
        p.stop()
