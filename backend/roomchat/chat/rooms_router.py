"""Room state REST API router.

Endpoints:
    GET /rooms/{room}/messages   - Message history with sender avatars
    GET /rooms/{room}/background - Current room background
    GET /users/{name}/avatar     - Current avatar for a user name
"""
import logging
from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from roomchat.store import HistoryEntry

from .hub import get_hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rooms"])


class RoomHistoryResponse(BaseModel):
    """Response model for room history."""
    room: str
    messages: List[HistoryEntry]


class RoomBackgroundResponse(BaseModel):
    room: str
    url: Optional[str] = None


class UserAvatarResponse(BaseModel):
    name: str
    url: Optional[str] = None


@router.get("/rooms/{room}/messages", response_model=RoomHistoryResponse)
def get_room_messages(room: str) -> RoomHistoryResponse:
    """Get every message of a room, oldest first.

    Args:
        room: The room name.

    Returns:
        RoomHistoryResponse; ``messages`` is empty for an unknown room.
    """
    messages = get_hub().store.list_messages_by_room(room)
    logger.debug(f"History read for {room}: {len(messages)} messages")
    return RoomHistoryResponse(room=room, messages=messages)


@router.get("/rooms/{room}/background", response_model=RoomBackgroundResponse)
def get_room_background(room: str) -> RoomBackgroundResponse:
    return RoomBackgroundResponse(room=room, url=get_hub().store.get_room_background(room))


@router.get("/users/{name}/avatar", response_model=UserAvatarResponse)
def get_user_avatar(name: str) -> UserAvatarResponse:
    return UserAvatarResponse(name=name, url=get_hub().store.get_user_avatar(name))
