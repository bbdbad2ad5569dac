"""Pytest configuration and fixtures."""

import os
import secrets
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from jose import jwt

# Generate a unique test secret for this test run to prevent token forgery
_TEST_JWT_SECRET = f"test-only-{secrets.token_urlsafe(32)}"

os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET_KEY", _TEST_JWT_SECRET)
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("AI_LATENCY_SCALE", "0")

from fastapi.testclient import TestClient  # noqa: E402

from app.bridge import get_bridge  # noqa: E402
from app.config import get_settings  # noqa: E402
from app.database import get_db  # noqa: E402
from app.main import app  # noqa: E402
from omnidev import AIBridge, BridgeConfig  # noqa: E402
from omnidev.entitlements import InMemorySubscriptionDirectory  # noqa: E402

USER_TIERS = {
    "usr_basic": 1,
    "usr_pro": 2,
    "usr_admin": 3,
}
ADMIN_USERS = {"usr_admin"}

MODEL_MIN_LEVELS = {
    "CodeT5": 1,
    "CodeParrot": 1,
    "StarCoder": 2,
    "CodeGen": 2,
    "DiffCodeGen": 2,
    "GPTJ": 2,
    "OmniDev-AutoFix": 2,
    "CodeLlama": 3,
}


@pytest.fixture
def bridge():
    """A fresh bridge per test, backed by an in-memory subscription directory."""
    directory = InMemorySubscriptionDirectory(
        user_tiers=dict(USER_TIERS), model_min_levels=dict(MODEL_MIN_LEVELS)
    )
    return AIBridge(directory, BridgeConfig(latency_scale=0.0))


@pytest.fixture
def client(bridge):
    """Create a test client with the bridge and database swapped out."""
    app.dependency_overrides[get_bridge] = lambda: bridge
    app.dependency_overrides[get_db] = lambda: MagicMock()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def issue_token():
    """Sign a token the way the upstream login service does.

    The backend only verifies tokens, so issuance lives with the tests.
    """

    def _issue(
        user_id: str,
        expires_delta: timedelta | None = None,
        token_type: str = "access",
        secret: str | None = None,
    ) -> str:
        settings = get_settings()
        now = datetime.now(timezone.utc)
        claims = {
            "sub": user_id,
            "exp": now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes)),
            "iat": now,
            "type": token_type,
        }
        return jwt.encode(
            claims, secret or settings.jwt_secret_key, algorithm=settings.jwt_algorithm
        )

    return _issue


@pytest.fixture
def make_auth_headers(issue_token):
    """Build auth headers for a given user."""

    def _make(user_id: str = "usr_pro") -> dict:
        return {"Authorization": f"Bearer {issue_token(user_id)}"}

    return _make


@pytest.fixture
def auth_headers(make_auth_headers):
    """Headers for a tier-2, non-admin user."""
    return make_auth_headers("usr_pro")


@pytest.fixture
def admin_headers(make_auth_headers):
    return make_auth_headers("usr_admin")


@pytest.fixture(autouse=True)
def mock_user_lookup(monkeypatch):
    """Avoid real Supabase calls for user lookups in unit tests."""

    async def _fake_get_user(db, user_id):
        if user_id not in USER_TIERS:
            return None
        return {
            "user_id": user_id,
            "subscription_plan_id": USER_TIERS[user_id],
            "is_admin": user_id in ADMIN_USERS,
        }

    monkeypatch.setattr("app.database.get_user", _fake_get_user)
