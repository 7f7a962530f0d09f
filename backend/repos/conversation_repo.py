"""Repository for the per-site editor conversation."""

from __future__ import annotations

import json
from uuid import UUID, uuid4

import asyncpg

from backend.db import user_conn
from backend.models.conversation import Conversation, Message


def _row_to_conversation(row: asyncpg.Record) -> Conversation:
    """Convert a database row to a Conversation model."""
    messages_raw = row["messages"]
    # JSONB comes back as a Python list from asyncpg
    if isinstance(messages_raw, str):
        messages_raw = json.loads(messages_raw)
    messages = [Message(**m) for m in messages_raw]

    return Conversation(
        id=row["id"],
        site_id=row["site_id"],
        messages=messages,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class ConversationRepo:
    """All conversation-related database operations. One conversation per site."""

    async def get_for_site(self, user_id: UUID, site_id: UUID) -> Conversation | None:
        """
        Get the conversation for a site.

        Args:
            user_id: User UUID
            site_id: Site UUID

        Returns:
            Conversation if found, None otherwise
        """
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow(
                "SELECT * FROM conversations WHERE site_id = $1",
                site_id,
            )
            return _row_to_conversation(row) if row else None

    async def append_messages(self, user_id: UUID, site_id: UUID, messages: list[Message]) -> None:
        """
        Append messages to a site's conversation, creating it on first write.

        Args:
            user_id: User UUID
            site_id: Site UUID
            messages: Messages to append, oldest first
        """
        if not messages:
            return
        # The jsonb codec (see db._init_connection) serializes the list
        payload = [m.model_dump(mode="json") for m in messages]
        async with user_conn(user_id) as conn:
            await conn.execute(
                """
                INSERT INTO conversations (id, site_id, messages)
                VALUES ($1, $2, $3)
                ON CONFLICT (site_id) DO UPDATE
                SET messages = conversations.messages || EXCLUDED.messages,
                    updated_at = now()
                """,
                uuid4(),
                site_id,
                payload,
            )
