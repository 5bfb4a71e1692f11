# chatapp/routers/realtime.py
"""
Live channel. One socket per user: the handshake carries the same bearer
token the REST API uses, and the socket is registered under that user.

Frames in both directions are JSON objects ``{"event": ..., "data": ...}``.
"""

import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from chatapp.common.deps import get_ws_fanout, get_ws_presence, user_from_token
from chatapp.common.fanout import Event, FanOut
from chatapp.common.presence import PresenceRegistry
from chatapp.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


async def handle_client_frame(fanout: FanOut, user_id: int, frame) -> None:
    """Relay a typing indicator. The sender is always the socket's owner."""
    if not isinstance(frame, dict):
        logger.debug("Ignoring non-object frame from user %s", user_id)
        return
    event = frame.get("event")
    data = frame.get("data") or {}
    if event not in (Event.TYPING.value, Event.STOP_TYPING.value):
        logger.debug("Ignoring unknown event %r from user %s", event, user_id)
        return
    try:
        receiver_id = int(data.get("receiverId"))
    except (AttributeError, TypeError, ValueError):
        logger.debug("Ignoring %s without receiverId from user %s", event, user_id)
        return
    await fanout.typing(user_id, receiver_id, is_typing=event == Event.TYPING.value)


@router.websocket("/ws")
async def realtime(
    websocket: WebSocket,
    token: str = Query(""),
    db: Session = Depends(get_db),
    presence: PresenceRegistry = Depends(get_ws_presence),
    fanout: FanOut = Depends(get_ws_fanout),
):
    user = user_from_token(db, token) if token else None
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    user_id = user.id
    # Give the pooled connection back; the socket may stay open for hours
    db.rollback()

    await websocket.accept()
    try:
        await presence.register(user_id, websocket)
        while True:
            try:
                frame = await websocket.receive_json()
            except ValueError:
                logger.debug("Ignoring malformed frame from user %s", user_id)
                continue
            await handle_client_frame(fanout, user_id, frame)
    except WebSocketDisconnect:
        pass
    finally:
        await presence.unregister(user_id, websocket)
