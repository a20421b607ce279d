"""Durable chat storage: messages, last-seen pointers, reactions, customization."""

from .schemas import FileType, HistoryEntry, Message, ReactionTally, now_ms
from .service import ChatStore, StorageError, call_store

__all__ = [
    "ChatStore",
    "call_store",
    "FileType",
    "HistoryEntry",
    "Message",
    "ReactionTally",
    "StorageError",
    "now_ms",
]
