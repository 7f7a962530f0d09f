"""
WebSocket endpoint for the interactive editor.

Accepts connections at /ws/sessions/{session_id} for an editing session
opened through POST /api/sessions, and streams pipeline progress back while a
turn runs.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from uuid import UUID

import jwt
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from backend.auth import SESSION_COOKIE
from backend.config import settings
from backend.middleware.rate_limit import turn_rate_limiter
from backend.routes.sessions import get_session_store, session_response, turn_response
from backend.services.editing_session import EditingSession, SessionStore, TurnInProgressError
from engine.kernel.errors import ConfigurationError
from engine.kernel.sandbox import SELECTION_TYPE

logger = logging.getLogger(__name__)

# Close codes in the 4000 range are application-defined
_CLOSE_UNAUTHORIZED = 4401
_CLOSE_NOT_FOUND = 4404

router = APIRouter(tags=["websocket"])


def _get_user_id_from_websocket(websocket: WebSocket) -> UUID | None:
    """Extract user_id from the WebSocket session cookie. None if absent or invalid."""
    session = websocket.cookies.get(SESSION_COOKIE)
    if not session:
        return None

    try:
        payload = jwt.decode(session, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        user_id_str = payload.get("sub")
        if user_id_str:
            return UUID(user_id_str)
    except (jwt.InvalidTokenError, ValueError):
        return None

    return None


async def _send(websocket: WebSocket, payload: dict[str, Any]) -> None:
    await websocket.send_text(json.dumps(payload, default=str))


async def _handle_message(websocket: WebSocket, session: EditingSession, content: str) -> None:
    """Run one turn, forwarding each progress text as it is emitted."""
    if not content.strip():
        await _send(websocket, {"type": "turn.error", "error": "Message is empty."})
        return
    if session.busy:
        await _send(websocket, {"type": "turn.error", "error": "Still working on your last request."})
        return
    if not turn_rate_limiter.check_rate_limit(str(session.user.id), settings.TURNS_PER_MINUTE):
        await _send(websocket, {"type": "turn.error", "error": "Too many requests. Please wait a moment."})
        return

    async def on_status(text: str) -> None:
        await _send(websocket, {"type": "turn.status", "text": text})

    await _send(websocket, {"type": "turn.start"})
    try:
        outcome = await session.submit(content, on_status=on_status)
    except TurnInProgressError:
        await _send(websocket, {"type": "turn.error", "error": "Still working on your last request."})
        return
    except ConfigurationError as e:
        await _send(websocket, {"type": "turn.error", "error": str(e)})
        return

    await _send(websocket, {"type": "turn.end", **turn_response(session, outcome).model_dump(mode="json")})
    logger.info("ws: turn finished session=%s stage=%s", session.id, outcome.state.stage)


@router.websocket("/ws/sessions/{session_id}")
async def session_websocket(
    websocket: WebSocket,
    session_id: UUID,
    store: SessionStore = Depends(get_session_store),
) -> None:
    """
    Drive an editing session over WebSocket.

    Protocol:
      Client → Server:  {"type": "message", "content": "..."}
                        {"type": "BOX_SELECTED", "id": <int>}
                        {"type": "edit_mode", "enabled": <bool>}
      Server → Client:  {"type": "session.state", ...}   on connect
                        {"type": "turn.start"} / {"type": "turn.status", "text": ...} / {"type": "turn.end", ...}
                        {"type": "turn.error", "error": ...}
                        {"type": "selection", "accepted": ..., "selected_box_id": ...}
    """
    await websocket.accept()

    user_id = _get_user_id_from_websocket(websocket)
    if user_id is None:
        await websocket.close(code=_CLOSE_UNAUTHORIZED)
        return

    session = store.get(session_id, user_id)
    if session is None:
        await websocket.close(code=_CLOSE_NOT_FOUND)
        return

    logger.info("ws: connected session=%s", session_id)
    await _send(websocket, {"type": "session.state", **session_response(session).model_dump(mode="json")})

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("ws: malformed message from client: %r", raw[:200])
                continue
            if not isinstance(msg, dict):
                continue

            msg_type = msg.get("type")

            if msg_type == "message":
                content = msg.get("content")
                await _handle_message(websocket, session, content if isinstance(content, str) else "")
                continue

            if msg_type == SELECTION_TYPE:
                accepted = session.receive_selection(msg)
                await _send(
                    websocket,
                    {"type": "selection", "accepted": accepted, "selected_box_id": session.selected_box_id},
                )
                continue

            if msg_type == "edit_mode":
                enabled = msg.get("enabled")
                if isinstance(enabled, bool):
                    session.set_edit_mode(enabled)
                    await _send(websocket, {"type": "session.state", **session_response(session).model_dump(mode="json")})
                continue

            logger.debug("ws: ignored message type %r", msg_type)
    except WebSocketDisconnect:
        logger.info("ws: disconnected session=%s", session_id)
