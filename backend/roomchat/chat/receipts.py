"""Receipt engine: message delivery and seen acknowledgments.

Per message, from the sender's point of view::

    Sent ──persist+broadcast──▶ Delivered ──seen by someone else──▶ Seen

Broadcast to the room *is* delivery: every joined connection is assumed
reachable, and nothing is queued for members who are offline.

Ordering rule: a message is persisted before anything is broadcast. If the
write fails, ``StorageError`` propagates to the caller and the room hears
nothing about the message.

Seen payloads carry ``names=[viewer, sender]``. Consumers keep a per-message
set and union every payload into it, so repeated or reordered seen events
never remove anyone.
"""
import logging
from typing import Optional

from roomchat.store import ChatStore, FileType, Message, call_store

from .broadcaster import RoomBroadcaster, make_event
from .sessions import Session

logger = logging.getLogger(__name__)


class ReceiptEngine:
    """Persists messages and emits ``message``/``delivered``/``seen`` events."""

    def __init__(self, store: ChatStore, broadcaster: RoomBroadcaster) -> None:
        self._store = store
        self._broadcaster = broadcaster

    async def post_message(
        self,
        session: Session,
        room: str,
        message_id: str,
        text: str = "",
        file_url: Optional[str] = None,
        file_type: Optional[FileType] = None,
    ) -> Message:
        """Persist a text or file message, then announce and deliver it.

        The room receives ``message`` followed by ``delivered``.

        Raises:
            StorageError: If the message could not be stored. Nothing is
                broadcast in that case.
        """
        message = Message(
            id=message_id,
            room=room,
            sender=session.name,
            text=text,
            fileUrl=file_url,
            fileType=file_type,
        )

        avatar_url = await call_store(self._store.get_user_avatar, message.sender)
        await call_store(self._store.create_message, message)

        logger.info(
            f"[Receipts] {message.sender} posted {message.id} to room {room} "
            f"({'file' if file_url else 'text'})"
        )
        await self._broadcaster.broadcast(room, make_event("message", **message.to_event(avatar_url)))
        await self._broadcaster.broadcast(room, make_event("delivered", id=message.id))
        return message

    async def mark_seen(self, session: Session, room: str, message_id: str) -> bool:
        """Record that ``session``'s user has viewed a message.

        Unknown messages are ignored silently, and so are senders viewing
        their own messages.

        Returns:
            True if a ``seen`` event was broadcast.
        """
        message = await call_store(self._store.get_message, room, message_id)
        if message is None:
            logger.debug(f"[Receipts] seen for unknown message {message_id} in {room}")
            return False

        viewer = session.name
        if viewer == message.sender:
            return False

        await self._broadcaster.broadcast(
            room, make_event("seen", id=message_id, names=[viewer, message.sender])
        )
        return True

    async def update_last_seen(self, room: str, user: str, message_id: str) -> None:
        """Move ``user``'s read-up-to pointer in ``room`` (last write wins)."""
        await call_store(self._store.set_last_seen, room, user, message_id)
