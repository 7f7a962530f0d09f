"""
Editing sessions: the caller that owns the current Document.

A session holds what the editor shows: the current Document, the chat log,
the selected box, edit mode, and the save indicator. It runs at most one
pipeline turn at a time, swaps the Document only when a turn finishes, and
hands the result to the autosaver.

Sessions live in process memory (SessionStore). Documents and conversations
are persisted through the repos; sessions themselves are not.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from backend.db import persistence_errors
from backend.models.conversation import Message
from backend.models.user import User
from backend.repos.conversation_repo import ConversationRepo
from backend.repos.site_repo import SiteRepo
from backend.services.autosave import Autosaver
from backend.services.pipeline import GenerationPipeline, StatusSink, generation_pipeline
from engine.kernel.boxes import box_ids
from engine.kernel.errors import PersistenceError, ProtocolViolation, VibeError
from engine.kernel.sandbox import parse_selection
from engine.kernel.starter import STARTER_DOCUMENT
from engine.kernel.types import Document, Instruction, TurnState

logger = logging.getLogger(__name__)

WELCOME_NEW = "Hi {name}! I'm ready to build. What kind of website do you need today?"
WELCOME_BACK = 'Welcome back! I\'ve loaded "{title}". What would you like to change?'
CONFIRMATION = "I've updated the design! Check out the preview on the right."
APOLOGY = "Sorry, I hit a snag generating the code. Please try again or check your API key."


class TurnInProgressError(VibeError):
    """An instruction arrived while the previous one is still running."""


class SiteNotFoundError(VibeError):
    """The site to open does not exist or belongs to someone else."""


@dataclass(frozen=True)
class TurnOutcome:
    state: TurnState
    reply: str


def _now() -> datetime:
    return datetime.now(UTC)


def _first_name(name: str) -> str:
    parts = name.split()
    return parts[0] if parts else "there"


class EditingSession:
    """One user's editor for one site."""

    def __init__(
        self,
        user: User,
        autosaver: Autosaver,
        document: Document,
        pipeline: GenerationPipeline,
        conversation_repo: ConversationRepo,
        history: list[Message] | None = None,
    ) -> None:
        self.id: UUID = uuid4()
        self.user = user
        self.autosaver = autosaver
        self.document = document
        self.pipeline = pipeline
        self.conversation_repo = conversation_repo
        self.messages: list[Message] = list(history or [])
        # Messages not yet written to the site's conversation
        self._unsaved: list[Message] = []
        self.selected_box_id: int | None = None
        self.edit_mode = False
        self.busy = False
        self.last_active = _now()

    # ── State ──────────────────────────────────────────────────────────────

    @property
    def site_id(self) -> UUID | None:
        return self.autosaver.site_id

    @property
    def title(self) -> str:
        return self.autosaver.title

    @property
    def save_state(self) -> str:
        return self.autosaver.state

    @property
    def box_count(self) -> int:
        return len(box_ids(self.document))

    def touch(self) -> None:
        self.last_active = _now()

    def add_message(self, role: str, content: str, persist: bool = True, **metadata: Any) -> Message:
        message = Message(role=role, content=content, timestamp=_now(), metadata=metadata)
        self.messages.append(message)
        if persist:
            self._unsaved.append(message)
        return message

    # ── Turns ──────────────────────────────────────────────────────────────

    async def submit(self, text: str, on_status: StatusSink | None = None) -> TurnOutcome:
        """
        Run one instruction through the pipeline.

        On success the Document is replaced, the selection cleared, the result
        autosaved, and a confirmation appended. On failure one apology is
        appended and the Document and save state are left as they were.

        Raises:
            TurnInProgressError: If a turn is already running
            ConfigurationError: If the pipeline is not configured (nothing is recorded)
        """
        if self.busy:
            raise TurnInProgressError("A generation is already in progress for this session")
        self.pipeline.ensure_configured()

        self.busy = True
        self.touch()
        try:
            self.add_message("user", text)
            instruction = Instruction(
                text=text,
                prior_document=self.document,
                selected_box_id=self.selected_box_id,
            )
            state = await self.pipeline.run(instruction, on_status)

            if not state.ok or state.document is None:
                error = state.error.message if state.error else "no document produced"
                self.add_message("assistant", APOLOGY, error=error)
                await self._flush_conversation()
                return TurnOutcome(state=state, reply=APOLOGY)

            self.document = state.document
            self.selected_box_id = None
            self.add_message("assistant", CONFIRMATION)
            await self._autosave()
            return TurnOutcome(state=state, reply=CONFIRMATION)
        finally:
            self.busy = False
            self.touch()

    async def commit_title(self, title: str) -> None:
        """Persist a title edit. Failures show up in save_state."""
        self.touch()
        try:
            await self.autosaver.commit_title(title.strip(), self.document)
        except PersistenceError:
            # Logged by the autosaver; the indicator shows "error"
            return
        await self._flush_conversation()

    async def save_document(self) -> None:
        await self._autosave()

    async def _autosave(self) -> None:
        try:
            await self.autosaver.save(self.document)
        except PersistenceError:
            # Logged by the autosaver; the indicator shows "error"
            return
        await self._flush_conversation()

    async def _flush_conversation(self) -> None:
        if self.site_id is None or not self._unsaved:
            return
        pending = list(self._unsaved)
        try:
            async with persistence_errors("conversation append"):
                await self.conversation_repo.append_messages(self.user.id, self.site_id, pending)
        except PersistenceError as e:
            # Kept for the next flush
            logger.error("editing_session %s: %s", self.id, e)
            return
        del self._unsaved[: len(pending)]

    # ── Sandbox ────────────────────────────────────────────────────────────

    def receive_selection(self, payload: Any) -> bool:
        """
        Take a selection envelope from the sandbox.

        Malformed envelopes, ids not present in the current Document, and
        anything arriving outside edit mode are dropped.

        Returns:
            True if the selection was stored
        """
        self.touch()
        try:
            selection = parse_selection(payload)
        except ProtocolViolation as e:
            logger.debug("editing_session %s: ignored selection: %s", self.id, e)
            return False
        if not self.edit_mode:
            logger.debug("editing_session %s: selection outside edit mode ignored", self.id)
            return False
        if selection.box_id not in box_ids(self.document):
            logger.debug("editing_session %s: unknown box %d ignored", self.id, selection.box_id)
            return False
        self.selected_box_id = selection.box_id
        return True

    def set_edit_mode(self, enabled: bool) -> None:
        self.touch()
        self.edit_mode = enabled


class SessionStore:
    """In-memory registry of open editing sessions, keyed by session id."""

    def __init__(
        self,
        site_repo: SiteRepo | None = None,
        conversation_repo: ConversationRepo | None = None,
        pipeline: GenerationPipeline | None = None,
    ) -> None:
        self._sessions: dict[UUID, EditingSession] = {}
        self.site_repo = site_repo or SiteRepo()
        self.conversation_repo = conversation_repo or ConversationRepo()
        self.pipeline = pipeline or generation_pipeline

    async def open(self, user: User, site_id: UUID | None = None) -> EditingSession:
        """
        Open an editor.

        Without site_id a new site is started from the starter page and saved
        straight away. With site_id the site's current version and its
        conversation are loaded.

        Raises:
            SiteNotFoundError: If site_id is unknown or not owned by user
            PersistenceError: If the site cannot be loaded
        """
        if site_id is None:
            session = EditingSession(
                user=user,
                autosaver=Autosaver(user.id, self.site_repo),
                document=STARTER_DOCUMENT,
                pipeline=self.pipeline,
                conversation_repo=self.conversation_repo,
            )
            session.add_message("assistant", WELCOME_NEW.format(name=_first_name(user.name or "")), persist=False)
            await session.save_document()
        else:
            async with persistence_errors("site load"):
                site = await self.site_repo.get(user.id, site_id)
                if site is None:
                    raise SiteNotFoundError(f"Site {site_id} not found")
                conversation = await self.conversation_repo.get_for_site(user.id, site_id)

            document = Document(html=site.html_content) if site.html_content else STARTER_DOCUMENT
            session = EditingSession(
                user=user,
                autosaver=Autosaver(user.id, self.site_repo, site=site),
                document=document,
                pipeline=self.pipeline,
                conversation_repo=self.conversation_repo,
                history=[m for m in conversation.messages if m.role != "system"] if conversation else None,
            )
            session.add_message("assistant", WELCOME_BACK.format(title=site.title), persist=False)

        self._sessions[session.id] = session
        logger.info("session_store: opened %s for site %s", session.id, session.site_id)
        return session

    def get(self, session_id: UUID, user_id: UUID) -> EditingSession | None:
        """Get a session. Sessions of other users read as missing."""
        session = self._sessions.get(session_id)
        if session is None or session.user.id != user_id:
            return None
        return session

    def close(self, session_id: UUID, user_id: UUID) -> bool:
        session = self.get(session_id, user_id)
        if session is None:
            return False
        del self._sessions[session_id]
        return True

    def evict_idle(self, max_idle: timedelta) -> int:
        """
        Drop sessions with no activity for max_idle. Busy sessions are kept.

        Returns:
            Number of sessions evicted
        """
        cutoff = _now() - max_idle
        stale = [sid for sid, s in self._sessions.items() if not s.busy and s.last_active < cutoff]
        for sid in stale:
            del self._sessions[sid]
        return len(stale)

    def __len__(self) -> int:
        return len(self._sessions)


# Singleton instance
session_store = SessionStore()
