"""Demo login routes: fetch-or-create by email, current user, logout."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import EmailStr, TypeAdapter, ValidationError

from backend import config
from backend.auth import SESSION_COOKIE, create_jwt, get_current_user
from backend.models.user import LogoutResponse, User, UserPublic
from backend.repos.user_repo import UserRepo

router = APIRouter(tags=["users"])
user_repo = UserRepo()

_email_adapter = TypeAdapter(EmailStr)


def _set_session_cookie(response: Response, value: str, max_age: int) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=value,
        httponly=True,
        secure=True,  # HTTPS only
        samesite="lax",
        max_age=max_age,
        path="/",
    )


@router.get("/api/users/{email}", status_code=200)
async def login(email: str, response: Response) -> UserPublic:
    """
    Demo login: fetch the user for email, creating them on first sight.

    Sets the session cookie. There is no password or email verification.
    """
    try:
        address = _email_adapter.validate_python(email.strip())
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Please enter a valid email address.",
        ) from e

    user = await user_repo.get_or_create(address.lower())
    _set_session_cookie(response, create_jwt(user.id), config.settings.JWT_EXPIRY_HOURS * 3600)
    return UserPublic.from_user(user)


@router.get("/auth/me", status_code=200)
async def me(user: User = Depends(get_current_user)) -> UserPublic:
    """Get the current authenticated user. Requires valid session cookie."""
    return UserPublic.from_user(user)


@router.post("/auth/logout", status_code=200)
async def logout(response: Response) -> LogoutResponse:
    """Clear the session cookie."""
    _set_session_cookie(response, "", 0)
    return LogoutResponse()
