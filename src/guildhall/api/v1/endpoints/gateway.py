# src/guildhall/api/v1/endpoints/gateway.py
"""Real-time gateway: one WebSocket per client session."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from guildhall.api.v1.dependencies import SessionDep, authenticate_token
from guildhall.core.errors import UnauthenticatedError
from guildhall.core.settings import settings
from guildhall.realtime.broadcast import encode_frame
from guildhall.realtime.rooms import RoomRegistry, channel_room, conversation_room, guild_room
from guildhall.realtime.session import WebSocketSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["gateway"])

# Close code sent when the handshake carries no valid token.
UNAUTHENTICATED_CLOSE_CODE = 4401

_ROOM_OPS: dict[str, tuple[bool, Callable[[int], str]]] = {
    "joinGuild": (True, guild_room),
    "leaveGuild": (False, guild_room),
    "joinChannel": (True, channel_room),
    "leaveChannel": (False, channel_room),
    "joinConversation": (True, conversation_room),
    "leaveConversation": (False, conversation_room),
}


def _bearer_token(websocket: WebSocket, token: str | None) -> str | None:
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    return None


def _handle_command(
    registry: RoomRegistry,
    session: WebSocketSession,
    raw: str,
) -> str:
    """Apply one client command and return the reply frame."""
    try:
        command = json.loads(raw)
    except ValueError:
        return encode_frame("error", {"detail": "Malformed JSON"})
    if not isinstance(command, dict):
        return encode_frame("error", {"detail": "Command must be an object"})

    op = command.get("op")
    if op == "ping":
        return encode_frame("pong", None)

    spec = _ROOM_OPS.get(op) if isinstance(op, str) else None
    if spec is None:
        return encode_frame("error", {"detail": f"Unknown op: {op!r}"})

    target = command.get("id")
    if isinstance(target, bool) or not isinstance(target, int):
        return encode_frame("error", {"detail": "Field 'id' must be an integer"})

    join, room_for = spec
    room = room_for(target)
    if join:
        registry.subscribe(session, room)
        return encode_frame("subscribed", {"room": room})
    registry.unsubscribe(session, room)
    return encode_frame("unsubscribed", {"room": room})


@router.websocket("/gateway")
async def gateway(websocket: WebSocket, db: SessionDep, token: str | None = None) -> None:
    """Authenticate, then relay room commands and broadcast events.

    The session is subscribed to its own user room on connect; every other
    subscription is requested by the client.
    """
    try:
        user = authenticate_token(db, _bearer_token(websocket, token))
        user_id = user.id
    except UnauthenticatedError:
        await websocket.close(code=UNAUTHENTICATED_CLOSE_CODE)
        return
    finally:
        db.close()

    registry: RoomRegistry = websocket.app.state.rooms
    await websocket.accept()
    session = WebSocketSession(websocket, user_id, settings.gateway_send_queue_size)
    registry.connect(session)
    logger.info("Gateway connected: %r", session)

    await websocket.send_text(
        encode_frame("ready", {"userId": user_id, "rooms": sorted(registry.rooms_for(session))})
    )
    writer = asyncio.create_task(session.run_writer())
    try:
        while True:
            raw = await websocket.receive_text()
            session.send(_handle_command(registry, session, raw))
    except WebSocketDisconnect as exc:
        logger.info("Gateway disconnected: %r (code %s)", session, exc.code)
    finally:
        registry.session_closed(session)
        session.close()
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer


__all__ = ["router", "UNAUTHENTICATED_CLOSE_CODE"]
