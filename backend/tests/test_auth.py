"""
Tests for authentication (demo login and JWT sessions).
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import jwt
import pytest
from fastapi import HTTPException

from backend import config
from backend.auth import create_jwt, decode_jwt, user_id_from_token

pytestmark = pytest.mark.asyncio(loop_scope="session")


def _token(payload: dict) -> str:
    return jwt.encode(payload, config.settings.JWT_SECRET, algorithm=config.settings.JWT_ALGORITHM)


class TestJWT:
    """Test JWT creation and validation."""

    def test_round_trip(self):
        user_id = uuid4()
        payload = decode_jwt(create_jwt(user_id))

        assert payload["sub"] == str(user_id)
        assert "exp" in payload
        assert "iat" in payload

    def test_decode_expired_jwt(self):
        """An expired token is a 401."""
        token = _token({"sub": str(uuid4()), "exp": datetime.now(UTC) - timedelta(hours=1)})

        with pytest.raises(HTTPException) as exc:
            decode_jwt(token)

        assert exc.value.status_code == 401
        assert "expired" in exc.value.detail

    def test_decode_wrong_secret(self):
        token = jwt.encode({"sub": str(uuid4())}, "some-other-secret", algorithm="HS256")
        with pytest.raises(HTTPException) as exc:
            decode_jwt(token)
        assert exc.value.status_code == 401

    def test_subject_must_be_a_uuid(self):
        token = _token({"sub": "not-a-uuid", "exp": datetime.now(UTC) + timedelta(hours=1)})
        with pytest.raises(HTTPException) as exc:
            user_id_from_token(token)
        assert exc.value.status_code == 401


class TestLoginRoutes:
    """Tests for /api/users/{email}, /auth/me, /auth/logout."""

    async def test_login_creates_user_and_sets_cookie(self, async_client, test_user):
        repo = AsyncMock()
        repo.get_or_create.return_value = test_user

        with patch("backend.routes.users.user_repo", repo):
            res = await async_client.get("/api/users/Rosie@Example.com")

        assert res.status_code == 200
        assert res.json()["email"] == "rosie@example.com"
        assert res.json()["name"] == "Rosie Baker"
        repo.get_or_create.assert_awaited_once_with("rosie@example.com")
        cookie = res.headers["set-cookie"]
        assert cookie.startswith("session=")
        assert "HttpOnly" in cookie

    async def test_login_rejects_invalid_email(self, async_client):
        repo = AsyncMock()
        with patch("backend.routes.users.user_repo", repo):
            res = await async_client.get("/api/users/not-an-email")

        assert res.status_code == 422
        repo.get_or_create.assert_not_awaited()

    async def test_me_with_cookie(self, async_client, test_user):
        repo = AsyncMock()
        repo.get.return_value = test_user

        with patch("backend.auth.user_repo", repo):
            res = await async_client.get("/auth/me", cookies={"session": create_jwt(test_user.id)})

        assert res.status_code == 200
        assert res.json()["id"] == str(test_user.id)

    async def test_me_for_deleted_user(self, async_client):
        repo = AsyncMock()
        repo.get.return_value = None

        with patch("backend.auth.user_repo", repo):
            res = await async_client.get("/auth/me", cookies={"session": create_jwt(uuid4())})

        assert res.status_code == 401

    async def test_me_without_cookie(self, async_client):
        res = await async_client.get("/auth/me")
        assert res.status_code == 401

    async def test_logout_clears_cookie(self, async_client):
        res = await async_client.post("/auth/logout")

        assert res.status_code == 200
        cookie = res.headers["set-cookie"]
        assert cookie.startswith('session=""') or cookie.startswith("session=;")
        assert "Max-Age=0" in cookie
