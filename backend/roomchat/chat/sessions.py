"""Session registry: live connections, display names and room membership.

One ``Session`` exists per open WebSocket. Its lifetime is tied 1:1 to the
connection: ``open`` on accept, ``close`` on disconnect. Room membership is
kept as an explicit index (room -> connection ids) so broadcasting never
depends on an implicit grouping primitive.

Thread Safety:
    Designed for a single asyncio event loop. Not thread-safe.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)

# Name recorded for connections that send before joining
ANONYMOUS_NAME = "Anon"


@dataclass
class Session:
    """State for one live connection.

    Attributes:
        connection_id: Backend-generated identifier for the connection.
        websocket: The underlying WebSocket.
        display_name: Self-asserted name from the latest join, if any.
        joined_room: Room named by the latest join, if any.
        rooms: Every room this connection has joined.
    """
    connection_id: str
    websocket: WebSocket
    display_name: Optional[str] = None
    joined_room: Optional[str] = None
    rooms: Set[str] = field(default_factory=set)

    @property
    def name(self) -> str:
        """Display name, or the anonymous placeholder before any join."""
        return self.display_name or ANONYMOUS_NAME


class SessionRegistry:
    """Maps connections to sessions and rooms to their member connections."""

    def __init__(self) -> None:
        # connection_id -> Session
        self._sessions: Dict[str, Session] = {}

        # room -> set of connection_ids
        self._rooms: Dict[str, Set[str]] = {}

    def open(self, websocket: WebSocket) -> Session:
        """Create an empty session for a freshly accepted connection."""
        session = Session(connection_id=str(uuid.uuid4()), websocket=websocket)
        self._sessions[session.connection_id] = session
        logger.info(f"[Sessions] Opened {session.connection_id} ({len(self._sessions)} live)")
        return session

    def join(self, connection_id: str, room: str, name: str) -> Optional[Session]:
        """Bind ``name`` to the session and add it to ``room``'s group.

        Joining a room the connection is already in only re-binds the name.

        Returns:
            The updated session, or None if the connection is gone.
        """
        session = self._sessions.get(connection_id)
        if session is None:
            return None

        session.display_name = name
        session.joined_room = room
        session.rooms.add(room)
        self._rooms.setdefault(room, set()).add(connection_id)
        return session

    def close(self, connection_id: str) -> Optional[Session]:
        """Discard a session and remove it from every room. Idempotent."""
        session = self._sessions.pop(connection_id, None)
        if session is None:
            return None

        for room in session.rooms:
            members = self._rooms.get(room)
            if members is None:
                continue
            members.discard(connection_id)
            if not members:
                del self._rooms[room]

        logger.info(f"[Sessions] Closed {connection_id} ({len(self._sessions)} live)")
        return session

    def get(self, connection_id: str) -> Optional[Session]:
        return self._sessions.get(connection_id)

    def members(self, room: str) -> List[Session]:
        """Sessions currently joined to ``room``."""
        return [
            self._sessions[cid]
            for cid in self._rooms.get(room, set())
            if cid in self._sessions
        ]

    def all_sessions(self) -> List[Session]:
        return list(self._sessions.values())

    def rooms(self) -> List[str]:
        """Rooms with at least one live member."""
        return list(self._rooms.keys())

    def room_size(self, room: str) -> int:
        return len(self._rooms.get(room, set()))

    def __len__(self) -> int:
        return len(self._sessions)
