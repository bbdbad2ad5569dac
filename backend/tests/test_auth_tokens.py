"""Test JWT verification and the auth dependencies."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from app.auth import AuthContext, decode_token, get_admin_user
from app.config import get_settings


class TestTokens:
    """Test token decoding."""

    def test_decode_valid_token(self, issue_token):
        payload = decode_token(issue_token("usr_test123456"), get_settings())
        assert payload["sub"] == "usr_test123456"
        assert payload["type"] == "access"
        assert "exp" in payload
        assert "iat" in payload

    def test_expired_token_rejected(self, issue_token):
        token = issue_token("usr_test123456", expires_delta=timedelta(seconds=-1))
        with pytest.raises(HTTPException) as exc_info:
            decode_token(token, get_settings())
        assert exc_info.value.status_code == 401

    def test_wrong_secret_rejected(self, issue_token):
        forged = issue_token("usr_admin", secret="not-the-secret")
        with pytest.raises(HTTPException):
            decode_token(forged, get_settings())

    def test_non_access_token_rejected(self, client, issue_token):
        token = issue_token("usr_pro", token_type="refresh")
        response = client.get("/api/ai/models", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token payload"


class TestAdminDependency:
    """Test the admin gate used by learning stats."""

    @pytest.mark.asyncio
    async def test_admin_flag_set(self):
        user = await get_admin_user(AuthContext("usr_admin"), MagicMock())
        assert user.is_admin is True

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_admin_user(AuthContext("usr_basic"), MagicMock())
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_user_forbidden(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_admin_user(AuthContext("usr_ghost"), MagicMock())
        assert exc_info.value.status_code == 403
