"""Chat router providing the real-time WebSocket endpoint.

This module provides:
    - WebSocket /ws: room chat relay

The WebSocket protocol supports:
    - Joining any number of rooms on one connection (with state replay)
    - Text and file messages with delivered/seen receipts
    - Last-seen pointers
    - Typing indicators
    - Emoji reaction toggles
    - Room backgrounds and user avatars

Protocol Message Types (client -> server):
    - join: {room, name}
    - message: {room, id, text}
    - fileMessage: {room, id, fileUrl, fileType}
    - seen: {room, id}
    - updateLastSeen: {room, user, id}
    - typing: {room, name?, typing}
    - reaction: {room, id, emoji}
    - backgroundChange: {room, url}
    - avatarChange: {name, url}

Frames that are binary, are not JSON, have an unknown type, or miss a required field are
dropped; the connection stays open.
"""
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from roomchat.store import StorageError

from .events import parse_event
from .hub import get_hub

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_chat_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for the room chat relay.

    Protocol Flow:
        1. Client connects → Server creates an empty session
        2. Client sends: {type: "join", room, name}
           → Server sends (caller only): lastSeenId, history, reaction*,
             backgroundChange?, avatarChange?, joined
        3. Client sends: {type: "message", room, id, text}
           → Server broadcasts: {type: "message", ...} then {type: "delivered", id}
        4. Client sends: {type: "seen", room, id}
           → Server broadcasts: {type: "seen", id, names: [viewer, sender]}
        5. Client sends: {type: "reaction", room, id, emoji}
           → Server broadcasts: {type: "reaction", id, emoji, count}
        6. On disconnect → session and room memberships are discarded

    Args:
        websocket: The WebSocket connection.
    """
    hub = get_hub()
    await websocket.accept()
    session = hub.connect(websocket)
    logger.info(f"[WS] Connection accepted: {session.connection_id}")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            raw = message.get("text")
            if raw is None:
                logger.warning(f"[WS] Dropped binary frame from {session.connection_id}")
                continue
            try:
                data = json.loads(raw)
            except (json.JSONDecodeError, RecursionError):
                logger.warning(f"[WS] Dropped non-JSON frame from {session.connection_id}")
                continue

            parsed = parse_event(data)
            if parsed is None:
                continue
            event_type, event = parsed
            logger.debug("[WS] %s received: type=%s", session.connection_id, event_type)

            try:
                await hub.handle(session, event_type, event)
            except StorageError as e:
                logger.error(f"[WS] {event_type} from {session.name} failed: {e}")
                await hub.send_error(
                    session,
                    event_type,
                    "Storage failure: the event was not saved",
                    message_id=getattr(event, "id", None),
                )

            if not hub.is_live(session):
                # A send to this connection failed and its session was discarded
                logger.info(f"[WS] Closing {session.connection_id}: session discarded")
                await _close_quietly(websocket)
                break

    except WebSocketDisconnect:
        logger.info(f"[WS] {session.connection_id} ({session.name}) disconnected")
    finally:
        hub.disconnect(session)


async def _close_quietly(websocket: WebSocket) -> None:
    try:
        await websocket.close()
    except (RuntimeError, OSError) as e:
        logger.debug(f"[WS] Close after failed send: {e}")
