"""Reaction engine: emoji toggles and tallies.

A reaction is the membership of ``(message, room, user, emoji)``. Sending the
same reaction again removes it; different emoji from the same user are
independent. After every toggle the count for ``(message, emoji)`` is
recomputed from storage and broadcast, including zero.

Toggles of one key are linearized by ``KeyedLock``: the storage toggle and
the broadcast run under the key's lock, so rapid repeats from one user can
neither race in storage nor reach the room out of order. Different keys
never wait on each other.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable, Optional

from roomchat.store import ChatStore, call_store

from .broadcaster import RoomBroadcaster, make_event
from .sessions import Session

logger = logging.getLogger(__name__)


class KeyedLock:
    """One asyncio.Lock per key, created on demand and dropped when idle."""

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._holders: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class ReactionEngine:
    def __init__(self, store: ChatStore, broadcaster: RoomBroadcaster) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._locks = KeyedLock()

    async def toggle(
        self, session: Session, room: str, message_id: str, emoji: str
    ) -> Optional[int]:
        """Flip the session user's ``emoji`` on a message and broadcast the count.

        Reactions on a message that does not exist in ``room`` are dropped.

        Returns:
            The new number of users with this emoji on the message, or None
            if the message is unknown.

        Raises:
            StorageError: If the toggle could not be stored (no broadcast).
        """
        user = session.name
        if await call_store(self._store.get_message, room, message_id) is None:
            logger.debug(f"[Reactions] {user} reacted to unknown message {message_id} in {room}")
            return None

        async with self._locks.hold((message_id, room, user, emoji)):
            count = await call_store(self._store.toggle_reaction, room, message_id, user, emoji)
            logger.info(f"[Reactions] {user} toggled {emoji} on {message_id} in {room} -> {count}")
            await self._broadcaster.broadcast(
                room, make_event("reaction", id=message_id, emoji=emoji, count=count)
            )
        return count
