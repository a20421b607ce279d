"""Room backgrounds, user avatars and typing indicators.

Backgrounds are per room and avatars are per user name (global, shared by
every connection using that name). Both are persisted before they are
broadcast. Typing indicators are relayed only and never stored.
"""
import logging
from typing import Optional

from roomchat.store import ChatStore, call_store

from .broadcaster import RoomBroadcaster, make_event
from .sessions import Session

logger = logging.getLogger(__name__)


class CustomizationEngine:
    def __init__(self, store: ChatStore, broadcaster: RoomBroadcaster) -> None:
        self._store = store
        self._broadcaster = broadcaster

    async def change_background(self, room: str, url: str) -> None:
        """Store the room background and show it to everyone in the room."""
        await call_store(self._store.set_room_background, room, url)
        logger.info(f"[Customization] Background of {room} set to {url}")
        await self._broadcaster.broadcast(room, make_event("backgroundChange", room=room, url=url))

    async def change_avatar(self, name: str, url: str) -> None:
        """Store a user's avatar and announce it to every connection."""
        await call_store(self._store.set_user_avatar, name, url)
        logger.info(f"[Customization] Avatar of {name} set to {url}")
        await self._broadcaster.broadcast_global(make_event("avatarChange", name=name, url=url))

    async def relay_typing(
        self, session: Session, room: str, typing: bool, name: Optional[str] = None
    ) -> None:
        await self._broadcaster.broadcast(
            room, make_event("typing", room=room, name=name or session.name, typing=typing)
        )
