"""Room broadcaster: fan-out of events to connections.

Every outbound event is a JSON object of the form ``{"type": <event>,
**payload}``. Delivery is fire-and-forget: nothing waits for recipients to
acknowledge, there is no retry and no offline queue.

Performance Notes:
    - Fan-out uses asyncio.gather() for concurrent delivery
    - Connections whose send fails are dropped from the registry
"""
import asyncio
import logging
from typing import List

from fastapi import WebSocket

from .sessions import Session, SessionRegistry

logger = logging.getLogger(__name__)


def make_event(event_type: str, **payload) -> dict:
    """Build an outbound event frame."""
    return {"type": event_type, **payload}


class RoomBroadcaster:
    """Delivers events to one connection, a room, or every connection."""

    def __init__(self, registry: SessionRegistry) -> None:
        self._registry = registry

    async def send(self, session: Session, event: dict) -> bool:
        """Send an event to a single connection (caller-only replies)."""
        ok = await self._safe_send(session.websocket, event)
        if not ok:
            self._cleanup_sessions([session])
        return ok

    async def broadcast(self, room: str, event: dict) -> None:
        """Send an event to every connection currently joined to ``room``."""
        await self._fan_out(self._registry.members(room), event)

    async def broadcast_global(self, event: dict) -> None:
        """Send an event to every live connection, joined or not."""
        await self._fan_out(self._registry.all_sessions(), event)

    async def _fan_out(self, sessions: List[Session], event: dict) -> None:
        if not sessions:
            return

        results = await asyncio.gather(
            *[self._safe_send(s.websocket, event) for s in sessions],
            return_exceptions=True
        )

        failed = [s for s, ok in zip(sessions, results) if ok is not True]
        self._cleanup_sessions(failed)

    async def _safe_send(self, connection: WebSocket, event: dict) -> bool:
        """Send JSON to a WebSocket, returning False instead of raising."""
        try:
            await connection.send_json(event)
            return True
        except Exception as e:
            logger.debug(f"Failed to send {event.get('type')} to connection: {e}")
            return False

    def _cleanup_sessions(self, failed: List[Session]) -> None:
        for session in failed:
            if self._registry.close(session.connection_id) is not None:
                logger.debug(f"Removed dead connection {session.connection_id}")
