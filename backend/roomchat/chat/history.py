"""Join/history protocol: replay of room state to a joining connection.

Protocol Flow (every reply goes to the joining connection only):
    1. lastSeenId        {id: <msg id> | null}
    2. history           {room, messages: [message + avatarUrl, ...]}
    3. reaction          {id, emoji, count}   one per tally with count > 0
    4. backgroundChange  {room, url}          only if the room has one
    5. avatarChange      {name, url}          only if the user has one
    6. joined            {room, name}         always last (ready signal)

Steps 1-5 are independent reads. Joining again replays everything and
touches no stored state; only the session binding is refreshed.
"""
import logging
from typing import List

from roomchat.store import ChatStore, call_store

from .broadcaster import RoomBroadcaster, make_event
from .sessions import Session, SessionRegistry

logger = logging.getLogger(__name__)


class JoinProtocol:
    def __init__(
        self,
        store: ChatStore,
        registry: SessionRegistry,
        broadcaster: RoomBroadcaster,
    ) -> None:
        self._store = store
        self._registry = registry
        self._broadcaster = broadcaster

    async def join(self, session: Session, room: str, name: str) -> List[dict]:
        """Bind the session to ``room`` as ``name`` and replay the room's state.

        Returns:
            The replay events, in the order they were sent. Empty if the
            connection was already discarded.
        """
        if self._registry.join(session.connection_id, room, name) is None:
            logger.info(f"[Join] {session.connection_id} is closed; {room} not replayed")
            return []

        last_seen_id = await call_store(self._store.get_last_seen, room, name)
        history = await call_store(self._store.list_messages_by_room, room)
        tallies = await call_store(self._store.list_reaction_tallies, room)
        background = await call_store(self._store.get_room_background, room)
        avatar = await call_store(self._store.get_user_avatar, name)

        events = [
            make_event("lastSeenId", id=last_seen_id),
            make_event("history", room=room, messages=[m.model_dump(mode="json") for m in history]),
        ]
        events.extend(
            make_event("reaction", id=t.id, emoji=t.emoji, count=t.count)
            for t in tallies
            if t.count > 0
        )
        if background:
            events.append(make_event("backgroundChange", room=room, url=background))
        if avatar:
            events.append(make_event("avatarChange", name=name, url=avatar))
        events.append(make_event("joined", room=room, name=name))

        logger.info(
            f"[Join] {name} joined {room}: {len(history)} messages, "
            f"{len(tallies)} tallies, lastSeen={last_seen_id}"
        )
        for event in events:
            await self._broadcaster.send(session, event)
        return events
