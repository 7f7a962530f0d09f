"""Editing session models: what the editor sends and receives per turn."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from backend.models.conversation import MessageResponse

SaveState = Literal["idle", "saving", "saved", "error"]


class OpenSessionRequest(BaseModel):
    """What the client sends to open the editor. No site_id starts a new site."""

    model_config = {"extra": "forbid"}

    site_id: UUID | None = None


class SendInstructionRequest(BaseModel):
    """What the client sends for one chat turn."""

    model_config = {"extra": "forbid"}

    message: str = Field(min_length=1, max_length=10000)


class CommitTitleRequest(BaseModel):
    """What the client sends when the title field loses focus. Blank titles are rejected."""

    model_config = {"extra": "forbid", "str_strip_whitespace": True}

    title: str = Field(min_length=1, max_length=200)


class EditModeRequest(BaseModel):
    model_config = {"extra": "forbid"}

    enabled: bool


class SessionResponse(BaseModel):
    """Editor state for the client to render."""

    id: UUID
    site_id: UUID | None
    subdomain: str | None
    title: str
    save_state: SaveState
    edit_mode: bool
    busy: bool
    selected_box_id: int | None
    box_count: int
    document_hash: str
    messages: list[MessageResponse]


class TurnResponse(BaseModel):
    """What one chat turn returns."""

    ok: bool
    stage: str
    response_text: str
    error: str | None = None
    site_id: UUID | None
    save_state: SaveState
    box_count: int
    document_hash: str


class SelectionResponse(BaseModel):
    """Whether a selection envelope was taken. Rejected envelopes are not errors."""

    accepted: bool
    selected_box_id: int | None
