"""
Authentication for VibeBuilder.

JWT issuance and the session-cookie dependency. Login itself is the demo
fetch-or-create in routes/users.py; identity-provider correctness is out of
scope here.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Cookie, HTTPException, status

from backend import config
from backend.models.user import User
from backend.repos.user_repo import UserRepo

SESSION_COOKIE = "session"

user_repo = UserRepo()


def create_jwt(user_id: UUID) -> str:
    """
    Create a JWT for a user session.

    Args:
        user_id: User UUID to encode in the token

    Returns:
        Signed JWT string
    """
    expires_at = datetime.now(UTC) + timedelta(hours=config.settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(user_id),
        "exp": expires_at,
        "iat": datetime.now(UTC),
    }
    return jwt.encode(payload, config.settings.JWT_SECRET, algorithm=config.settings.JWT_ALGORITHM)


def decode_jwt(token: str) -> dict:
    """
    Decode and verify a JWT.

    Args:
        token: JWT string to decode

    Returns:
        Decoded payload

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(token, config.settings.JWT_SECRET, algorithms=[config.settings.JWT_ALGORITHM])
        return payload
    except jwt.ExpiredSignatureError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please sign in again.",
        ) from e
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        ) from e


def user_id_from_token(token: str) -> UUID:
    """
    Extract the user id from a session JWT.

    Raises:
        HTTPException: If the token is invalid, expired, or has no usable subject
    """
    payload = decode_jwt(token)
    try:
        return UUID(payload.get("sub") or "")
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        ) from e


async def get_current_user_from_cookie(session: str) -> User:
    """
    Authenticate user via session cookie.

    Args:
        session: JWT from HTTP-only session cookie

    Returns:
        Current authenticated User

    Raises:
        HTTPException: If session is invalid or user not found
    """
    user_id = user_id_from_token(session)
    user = await user_repo.get(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found. Please sign in again.",
        )
    return user


async def get_current_user(session: Annotated[str | None, Cookie()] = None) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    Raises:
        HTTPException: If authentication fails
    """
    if session:
        return await get_current_user_from_cookie(session)

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated. Please sign in.",
    )
