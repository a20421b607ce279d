"""Pydantic schemas for the durable chat tables.

These models are shared by:
    - ChatStore: DuckDB storage layer
    - The receipt, reaction and join engines (event payloads)
    - GET /rooms/{room}/messages
"""
import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FileType(str, Enum):
    """Kind of file attached to a message.

    Attributes:
        IMAGE: Rendered inline as an image.
        VIDEO: Rendered inline as a video player.
        FILE: Any other attachment, offered as a link.
    """
    IMAGE = "image"
    VIDEO = "video"
    FILE = "file"


def now_ms() -> int:
    """Current wall-clock time in integer milliseconds."""
    return int(time.time() * 1000)


class Message(BaseModel):
    """A chat message as stored. Immutable once created.

    Attributes:
        id: Client-generated unique message ID.
        room: Room the message was posted to.
        sender: Display name of the sender.
        text: Message text (empty for file messages).
        ts: Timestamp in milliseconds since epoch.
        fileUrl: Public URL of the attachment, if any.
        fileType: Attachment category, if any.
    """
    id: str = Field(..., description="Client-generated message ID")
    room: str = Field(..., description="Room ID")
    sender: str = Field(..., description="Display name of the sender")
    text: str = Field(default="", description="Message text")
    ts: int = Field(default_factory=now_ms, description="Timestamp (ms)")
    fileUrl: Optional[str] = Field(default=None, description="Attachment URL")
    fileType: Optional[FileType] = Field(default=None, description="Attachment type")

    def to_event(self, avatar_url: Optional[str]) -> dict:
        """Build the outbound ``message`` payload.

        File fields are only present on file messages.
        """
        payload = {
            "id": self.id,
            "sender": self.sender,
            "text": self.text,
            "ts": self.ts,
            "avatarUrl": avatar_url,
        }
        if self.fileUrl is not None:
            payload["fileUrl"] = self.fileUrl
            payload["fileType"] = self.fileType.value if self.fileType else None
        return payload


class HistoryEntry(Message):
    """A stored message joined with the sender's current avatar."""
    avatarUrl: Optional[str] = Field(default=None, description="Sender avatar URL")


class ReactionTally(BaseModel):
    """Number of users who applied ``emoji`` to message ``id``."""
    id: str
    emoji: str
    count: int
