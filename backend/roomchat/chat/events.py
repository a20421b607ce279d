"""Inbound WebSocket event schemas.

Clients send JSON frames ``{"type": <event>, ...payload}``. Each event type
maps to a pydantic model below; a frame whose type is unknown or whose
payload is missing a required field is dropped by ``parse_event``.
"""
import logging
from typing import Dict, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from roomchat.store.schemas import FileType

logger = logging.getLogger(__name__)


class InboundEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")


class JoinEvent(InboundEvent):
    room: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class MessageEvent(InboundEvent):
    room: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1, description="Client-generated message ID")
    text: str


class FileMessageEvent(InboundEvent):
    room: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1)
    fileUrl: str = Field(..., min_length=1)
    fileType: FileType


class SeenEvent(InboundEvent):
    room: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1)


class UpdateLastSeenEvent(InboundEvent):
    room: str = Field(..., min_length=1)
    user: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1)


class TypingEvent(InboundEvent):
    room: str = Field(..., min_length=1)
    name: Optional[str] = None
    typing: bool


class ReactionEvent(InboundEvent):
    room: str = Field(..., min_length=1)
    id: str = Field(..., min_length=1)
    emoji: str = Field(..., min_length=1)


class BackgroundChangeEvent(InboundEvent):
    room: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


class AvatarChangeEvent(InboundEvent):
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


EVENT_MODELS: Dict[str, Type[InboundEvent]] = {
    "join": JoinEvent,
    "message": MessageEvent,
    "fileMessage": FileMessageEvent,
    "seen": SeenEvent,
    "updateLastSeen": UpdateLastSeenEvent,
    "typing": TypingEvent,
    "reaction": ReactionEvent,
    "backgroundChange": BackgroundChangeEvent,
    "avatarChange": AvatarChangeEvent,
}


def parse_event(data: object) -> Optional[Tuple[str, InboundEvent]]:
    """Validate a decoded frame.

    Returns:
        ``(event_type, model)``, or None if the frame must be dropped.
    """
    if not isinstance(data, dict):
        logger.warning("[Events] Dropped non-object frame")
        return None

    event_type = data.get("type")
    model = EVENT_MODELS.get(event_type) if isinstance(event_type, str) else None
    if model is None:
        logger.warning("[Events] Dropped frame with unknown type=%r", event_type)
        return None

    try:
        return event_type, model.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        logger.warning("[Events] Dropped malformed %s event (fields: %s)", event_type, fields)
        return None
