"""
Tests for database connection pool, RLS scoping, and error translation.

NOTE: The pool tests require a running PostgreSQL database with the
DATABASE_URL environment variable set. Run `alembic upgrade head` first.
"""

from __future__ import annotations

from unittest.mock import patch

import asyncpg
import pytest

from backend import db
from backend.repos.user_repo import UserRepo
from engine.kernel.errors import PersistenceError

pytestmark = pytest.mark.asyncio(loop_scope="session")


class TestPersistenceErrors:
    async def test_driver_errors_are_translated(self):
        with pytest.raises(PersistenceError, match="site load failed"):
            async with db.persistence_errors("site load"):
                raise ConnectionResetError("reset by peer")

    async def test_interface_errors_are_translated(self):
        with pytest.raises(PersistenceError):
            async with db.persistence_errors("save"):
                raise asyncpg.InterfaceError("connection is closed")

    async def test_other_errors_pass_through(self):
        with pytest.raises(KeyError):
            async with db.persistence_errors("save"):
                raise KeyError("id")

    async def test_ping_without_pool(self):
        with patch.object(db, "pool", None):
            assert await db.ping() is False


async def test_pool_initialization(initialize_pool):
    """Test that the database pool is initialized correctly."""
    assert db.pool is not None
    assert db.pool.get_size() > 0
    assert await db.ping() is True


async def test_user_conn_sets_rls_context(test_user_id):
    """Test that user_conn sets the RLS context correctly."""
    async with db.user_conn(test_user_id) as conn:
        user_id_from_setting = await conn.fetchval("SELECT current_setting('app.user_id', true)")
        assert user_id_from_setting == str(test_user_id)


async def test_user_cannot_read_other_users(test_user_id, second_user_id):
    """RLS hides other users' rows."""
    async with db.user_conn(test_user_id) as conn:
        row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", second_user_id)
        assert row is None


async def test_get_or_create_is_idempotent(initialize_pool):
    repo = UserRepo()
    email = "get-or-create-test@example.com"
    try:
        first = await repo.get_or_create(email)
        second = await repo.get_or_create(email)

        assert first.id == second.id
        assert first.name == second.name
        assert (await repo.get_by_email(email)).id == first.id
    finally:
        async with db.system_conn() as conn:
            await conn.execute("DELETE FROM users WHERE email = $1", email)
