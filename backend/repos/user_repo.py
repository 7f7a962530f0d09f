"""Repository for user operations."""

from __future__ import annotations

from uuid import UUID

import asyncpg

from backend.config import settings
from backend.db import system_conn, user_conn
from backend.models.user import User


def _row_to_user(row: asyncpg.Record) -> User:
    """Convert a database row to a User model."""
    return User(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        avatar_url=row["avatar_url"],
        credits=row["credits"],
        created_at=row["created_at"],
    )


def _default_avatar(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={name.replace(' ', '+')}&background=0D8ABC&color=fff"


class UserRepo:
    """All user-related database operations."""

    async def get_by_email(self, email: str) -> User | None:
        """
        Get a user by email address.
        System conn because user context not yet established.

        Args:
            email: Email address to look up

        Returns:
            User if found, None otherwise
        """
        async with system_conn() as conn:
            row = await conn.fetchrow(
                "SELECT * FROM users WHERE email = $1",
                email,
            )
            return _row_to_user(row) if row else None

    async def get_or_create(self, email: str) -> User:
        """
        Fetch a user by email, creating them with demo defaults on first sight.

        Uses ON CONFLICT so two first logins for the same email
        end up with the same row.

        Args:
            email: Email address

        Returns:
            Existing or newly created User
        """
        name = settings.DEFAULT_USER_NAME
        async with system_conn() as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO users (email, name, credits, avatar_url)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (email) DO UPDATE SET email = EXCLUDED.email
                RETURNING *
                """,
                email,
                name,
                settings.DEFAULT_USER_CREDITS,
                _default_avatar(name),
            )
            return _row_to_user(row)

    async def get(self, user_id: UUID) -> User | None:
        """
        Get a user by ID.

        Args:
            user_id: User UUID

        Returns:
            User if found, None otherwise
        """
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
            return _row_to_user(row) if row else None
