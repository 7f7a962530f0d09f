"""User models for the demo login."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr


class User(BaseModel):
    """Core user model. Represents a row in the users table."""

    id: UUID
    email: EmailStr
    name: str | None = None
    avatar_url: str | None = None
    credits: int = 0
    created_at: datetime


class UserPublic(BaseModel):
    """What the API returns."""

    id: UUID
    email: EmailStr
    name: str | None
    avatar_url: str | None
    credits: int

    @classmethod
    def from_user(cls, user: User) -> UserPublic:
        """Convert internal User model to public API response."""
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            avatar_url=user.avatar_url,
            credits=user.credits,
        )


class LogoutResponse(BaseModel):
    message: str = "Signed out."
