"""Conversation models for the editor chat log."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field


class Message(BaseModel):
    """A single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class Conversation(BaseModel):
    """Core conversation model. Represents a row in the conversations table."""

    id: UUID
    site_id: UUID
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseModel):
    """A single message in the chat history returned to the client."""

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime

    @classmethod
    def from_model(cls, message: Message) -> MessageResponse:
        return cls(role=message.role, content=message.content, timestamp=message.timestamp)
