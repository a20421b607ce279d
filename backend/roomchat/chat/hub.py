"""Chat hub: wiring of store, sessions, broadcaster and engines.

The hub is created once per process and handed to every connection handler,
so no handler reaches for ambient module state. Tests install their own hub
(with an in-memory store) through ``set_hub``.
"""
import logging
from typing import Optional

from fastapi import WebSocket

from roomchat.config import get_config
from roomchat.store import ChatStore

from .broadcaster import RoomBroadcaster, make_event
from .customization import CustomizationEngine
from .events import (
    AvatarChangeEvent,
    BackgroundChangeEvent,
    FileMessageEvent,
    InboundEvent,
    JoinEvent,
    MessageEvent,
    ReactionEvent,
    SeenEvent,
    TypingEvent,
    UpdateLastSeenEvent,
)
from .history import JoinProtocol
from .reactions import ReactionEngine
from .receipts import ReceiptEngine
from .sessions import Session, SessionRegistry

logger = logging.getLogger(__name__)


class ChatHub:
    """Owns one store, one session registry and the engines built on them."""

    def __init__(self, store: ChatStore) -> None:
        self.store = store
        self.registry = SessionRegistry()
        self.broadcaster = RoomBroadcaster(self.registry)
        self.receipts = ReceiptEngine(store, self.broadcaster)
        self.reactions = ReactionEngine(store, self.broadcaster)
        self.join_protocol = JoinProtocol(store, self.registry, self.broadcaster)
        self.customization = CustomizationEngine(store, self.broadcaster)

    def connect(self, websocket: WebSocket) -> Session:
        return self.registry.open(websocket)

    def disconnect(self, session: Session) -> None:
        self.registry.close(session.connection_id)

    def is_live(self, session: Session) -> bool:
        """Whether the session is still registered (no send to it has failed)."""
        return self.registry.get(session.connection_id) is session

    async def handle(self, session: Session, event_type: str, event: InboundEvent) -> None:
        """Dispatch one validated inbound event.

        Raises:
            StorageError: If a persistence step fails.
        """
        if isinstance(event, JoinEvent):
            await self.join_protocol.join(session, event.room, event.name)
        elif isinstance(event, MessageEvent):
            await self.receipts.post_message(session, event.room, event.id, text=event.text)
        elif isinstance(event, FileMessageEvent):
            await self.receipts.post_message(
                session, event.room, event.id,
                file_url=event.fileUrl, file_type=event.fileType,
            )
        elif isinstance(event, SeenEvent):
            await self.receipts.mark_seen(session, event.room, event.id)
        elif isinstance(event, UpdateLastSeenEvent):
            await self.receipts.update_last_seen(event.room, event.user, event.id)
        elif isinstance(event, TypingEvent):
            await self.customization.relay_typing(session, event.room, event.typing, event.name)
        elif isinstance(event, ReactionEvent):
            await self.reactions.toggle(session, event.room, event.id, event.emoji)
        elif isinstance(event, BackgroundChangeEvent):
            await self.customization.change_background(event.room, event.url)
        elif isinstance(event, AvatarChangeEvent):
            await self.customization.change_avatar(event.name, event.url)
        else:
            logger.warning(f"[Hub] No handler for {event_type}")

    async def send_error(
        self, session: Session, event_type: str, error: str, message_id: Optional[str] = None
    ) -> None:
        """Report a failed operation to the requesting connection only."""
        payload = {"event": event_type, "error": error}
        if message_id is not None:
            payload["id"] = message_id
        await self.broadcaster.send(session, make_event("error", **payload))


# ---------------------------------------------------------------------------
# Process-wide hub
# ---------------------------------------------------------------------------

_hub: Optional[ChatHub] = None


def get_hub() -> ChatHub:
    """Return the process hub, creating it from config on first use."""
    global _hub
    if _hub is None:
        _hub = ChatHub(ChatStore.get_instance(get_config().storage.db_path))
    return _hub


def set_hub(hub: Optional[ChatHub]) -> None:
    """Set (or clear) the process hub."""
    global _hub
    _hub = hub
