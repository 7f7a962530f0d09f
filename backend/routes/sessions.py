"""
Editor routes: open a session, send instructions, select boxes, preview.

The WebSocket in routes/ws.py carries the same operations with live
progress; these HTTP routes are the request/response form of them.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import HTMLResponse

from backend.auth import get_current_user
from backend.config import settings
from backend.middleware.rate_limit import turn_rate_limiter
from backend.models.conversation import MessageResponse
from backend.models.session import (
    CommitTitleRequest,
    EditModeRequest,
    OpenSessionRequest,
    SelectionResponse,
    SendInstructionRequest,
    SessionResponse,
    TurnResponse,
)
from backend.models.user import User
from backend.services.editing_session import (
    EditingSession,
    SessionStore,
    SiteNotFoundError,
    TurnInProgressError,
    TurnOutcome,
    session_store,
)
from backend.utils.document_hash import hash_document
from engine.kernel.errors import ConfigurationError, PersistenceError
from engine.kernel.sandbox import render_host_page

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def get_session_store() -> SessionStore:
    return session_store


def session_response(session: EditingSession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        site_id=session.site_id,
        subdomain=session.autosaver.subdomain,
        title=session.title,
        save_state=session.save_state,
        edit_mode=session.edit_mode,
        busy=session.busy,
        selected_box_id=session.selected_box_id,
        box_count=session.box_count,
        document_hash=hash_document(session.document),
        messages=[MessageResponse.from_model(m) for m in session.messages if m.role != "system"],
    )


def turn_response(session: EditingSession, outcome: TurnOutcome) -> TurnResponse:
    return TurnResponse(
        ok=outcome.state.ok,
        stage=outcome.state.stage,
        response_text=outcome.reply,
        error=outcome.state.error.kind if outcome.state.error else None,
        site_id=session.site_id,
        save_state=session.save_state,
        box_count=session.box_count,
        document_hash=hash_document(session.document),
    )


def _get_session(store: SessionStore, session_id: UUID, user: User) -> EditingSession:
    session = store.get(session_id, user.id)
    if not session:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")
    return session


@router.post("", status_code=201)
async def open_session(
    req: OpenSessionRequest,
    user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    """
    Open the editor.

    Without site_id a new site is created from the starter page. With site_id
    the site's current version and conversation are loaded.
    """
    try:
        session = await store.open(user, req.site_id)
    except SiteNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found.") from e
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not load the site. Please try again.",
        ) from e
    return session_response(session)


@router.get("/{session_id}", status_code=200)
async def get_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    return session_response(_get_session(store, session_id, user))


@router.post("/{session_id}/messages", status_code=200)
async def send_instruction(
    session_id: UUID,
    req: SendInstructionRequest,
    user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store),
) -> TurnResponse:
    """
    Run one chat turn and return when the new page is ready.

    A failed generation is not an HTTP error: the response has ok=false and
    the apology text, and the page is unchanged.
    """
    session = _get_session(store, session_id, user)

    if session.busy:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Still working on your last request.",
        )
    if not turn_rate_limiter.check_rate_limit(str(user.id), settings.TURNS_PER_MINUTE):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please wait a moment and try again.",
        )

    try:
        outcome = await session.submit(req.message)
    except TurnInProgressError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Still working on your last request.",
        ) from e
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e

    return turn_response(session, outcome)


@router.post("/{session_id}/selection", status_code=200)
async def receive_selection(
    session_id: UUID,
    payload: Any = Body(...),
    user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store),
) -> SelectionResponse:
    """
    Relay a selection envelope from the sandbox.

    Envelopes that do not match {"type": "BOX_SELECTED", "id": N} are
    dropped, not rejected with an error.
    """
    session = _get_session(store, session_id, user)
    accepted = session.receive_selection(payload)
    return SelectionResponse(accepted=accepted, selected_box_id=session.selected_box_id)


@router.put("/{session_id}/edit-mode", status_code=200)
async def set_edit_mode(
    session_id: UUID,
    req: EditModeRequest,
    user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    session = _get_session(store, session_id, user)
    session.set_edit_mode(req.enabled)
    return session_response(session)


@router.patch("/{session_id}/title", status_code=200)
async def commit_title(
    session_id: UUID,
    req: CommitTitleRequest,
    user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    """Commit a title edit. A failed save shows up as save_state="error"."""
    session = _get_session(store, session_id, user)
    await session.commit_title(req.title)
    return session_response(session)


@router.get("/{session_id}/preview", response_class=HTMLResponse)
async def preview(
    session_id: UUID,
    user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store),
) -> HTMLResponse:
    """Host page with the current Document in a sandboxed iframe."""
    session = _get_session(store, session_id, user)
    html = render_host_page(
        session.document,
        edit_mode=session.edit_mode,
        title=session.title,
        selection_endpoint=f"/api/sessions/{session.id}/selection",
    )
    return HTMLResponse(content=html, headers={"Cache-Control": "no-store"})


@router.delete("/{session_id}", status_code=204)
async def close_session(
    session_id: UUID,
    user: User = Depends(get_current_user),
    store: SessionStore = Depends(get_session_store),
) -> None:
    if not store.close(session_id, user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")
