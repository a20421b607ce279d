"""DuckDB-based storage for rooms, messages, receipts and reactions.

This module provides the durable tables behind the chat relay. The service
implements the singleton pattern so only one database connection exists per
process.

Database Schema:
    messages table (PK id):
        - id, room, sender, text, ts (ms), file_url, file_type
        - seq: insertion sequence, breaks timestamp ties
    last_seen table (PK room, user):
        - msg_id: most recent message the user has read up to
    reactions table (PK msg_id, room, user, emoji):
        - presence means the user applied the emoji to the message
    room_backgrounds table (PK room):
        - url
    users table (PK name):
        - avatar_url

Thread Safety:
    The DuckDB connection is NOT thread-safe. Every public method acquires
    ``_lock`` for the whole statement (or transaction), which makes the store
    the single writer for all keys. Callers may therefore run store methods
    in a thread-pool executor.

Usage:
    store = ChatStore.get_instance()
    store.create_message(Message(id="m1", room="r1", sender="Alice", text="hi"))
    history = store.list_messages_by_room("r1")
"""
import asyncio
import logging
import threading
from typing import Any, Callable, List, Optional, TypeVar

import duckdb

from .schemas import FileType, HistoryEntry, Message, ReactionTally

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageError(Exception):
    """A write or read could not be completed by the storage engine."""


async def call_store(func: Callable[..., T], *args: Any) -> T:
    """Run a blocking store method in the default executor.

    Other connections' events keep flowing on the event loop while the
    storage round trip is in progress.
    """
    return await asyncio.get_event_loop().run_in_executor(None, lambda: func(*args))


class ChatStore:
    """Singleton service for the chat tables in DuckDB.

    All writes are insert-or-replace by primary key (last-write-wins), except
    ``create_message`` which refuses an existing message id.

    Attributes:
        _instance: Singleton instance of the service.
        _db_path: Path to the DuckDB database file.
    """

    _instance: Optional["ChatStore"] = None
    _db_path: str = "chat.duckdb"

    def __init__(self, db_path: Optional[str] = None) -> None:
        """Initialize the store, creating the schema if needed.

        Args:
            db_path: Path to DuckDB file. Defaults to "chat.duckdb".
        """
        if db_path:
            self._db_path = db_path
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.Lock()
        self._initialize_db()
        logger.info("[ChatStore] Initialized with db=%s", self._db_path)

    @classmethod
    def get_instance(cls, db_path: Optional[str] = None) -> "ChatStore":
        """Get or create the singleton instance.

        Args:
            db_path: Optional database path (only used on first call).
        """
        if cls._instance is None:
            cls._instance = cls(db_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Close the connection and clear the singleton (for testing)."""
        if cls._instance is not None:
            cls._instance.close()
            cls._instance = None

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._connection is None:
            self._connection = duckdb.connect(self._db_path)
        return self._connection

    def _initialize_db(self) -> None:
        """Create sequences and tables. Safe to call multiple times."""
        conn = self._get_connection()
        conn.execute("CREATE SEQUENCE IF NOT EXISTS messages_seq START 1")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                id VARCHAR PRIMARY KEY,
                seq BIGINT DEFAULT nextval('messages_seq'),
                room VARCHAR NOT NULL,
                sender VARCHAR NOT NULL,
                text VARCHAR NOT NULL,
                ts BIGINT NOT NULL,
                file_url VARCHAR,
                file_type VARCHAR
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_messages_room ON messages(room)")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS last_seen (
                room VARCHAR NOT NULL,
                "user" VARCHAR NOT NULL,
                msg_id VARCHAR NOT NULL,
                PRIMARY KEY (room, "user")
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS reactions (
                msg_id VARCHAR NOT NULL,
                room VARCHAR NOT NULL,
                "user" VARCHAR NOT NULL,
                emoji VARCHAR NOT NULL,
                PRIMARY KEY (msg_id, room, "user", emoji)
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS room_backgrounds (
                room VARCHAR PRIMARY KEY,
                url VARCHAR NOT NULL
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                name VARCHAR PRIMARY KEY,
                avatar_url VARCHAR
            )
        """)

    def _execute(self, sql: str, params: Optional[list] = None) -> None:
        """Run one write statement under the lock, translating engine errors."""
        with self._lock:
            try:
                self._get_connection().execute(sql, params or [])
            except duckdb.Error as e:
                logger.error("[ChatStore] Statement failed: %s", e)
                raise StorageError(str(e)) from e

    def _fetchone(self, sql: str, params: list) -> Optional[tuple]:
        with self._lock:
            try:
                return self._get_connection().execute(sql, params).fetchone()
            except duckdb.Error as e:
                logger.error("[ChatStore] Query failed: %s", e)
                raise StorageError(str(e)) from e

    def _fetchall(self, sql: str, params: list) -> List[tuple]:
        with self._lock:
            try:
                return self._get_connection().execute(sql, params).fetchall()
            except duckdb.Error as e:
                logger.error("[ChatStore] Query failed: %s", e)
                raise StorageError(str(e)) from e

    # -----------------------------------------------------------------------
    # Messages
    # -----------------------------------------------------------------------

    def create_message(self, message: Message) -> Message:
        """Persist a new message.

        Raises:
            StorageError: If the id already exists or the write fails.
        """
        self._execute(
            """
            INSERT INTO messages (id, room, sender, text, ts, file_url, file_type)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                message.id,
                message.room,
                message.sender,
                message.text,
                message.ts,
                message.fileUrl,
                message.fileType.value if message.fileType else None,
            ],
        )
        return message

    def get_message(self, room: str, message_id: str) -> Optional[Message]:
        """Get a message by id within a room, or None."""
        row = self._fetchone(
            """
            SELECT id, room, sender, text, ts, file_url, file_type
            FROM messages
            WHERE id = ? AND room = ?
            """,
            [message_id, room],
        )
        if not row:
            return None
        return Message(
            id=row[0],
            room=row[1],
            sender=row[2],
            text=row[3],
            ts=row[4],
            fileUrl=row[5],
            fileType=FileType(row[6]) if row[6] else None,
        )

    def list_messages_by_room(self, room: str) -> List[HistoryEntry]:
        """All messages of a room, oldest first, with each sender's avatar."""
        rows = self._fetchall(
            """
            SELECT m.id, m.room, m.sender, m.text, m.ts, m.file_url, m.file_type,
                   u.avatar_url
            FROM messages m
            LEFT JOIN users u ON m.sender = u.name
            WHERE m.room = ?
            ORDER BY m.ts ASC, m.seq ASC
            """,
            [room],
        )
        return [
            HistoryEntry(
                id=r[0],
                room=r[1],
                sender=r[2],
                text=r[3],
                ts=r[4],
                fileUrl=r[5],
                fileType=FileType(r[6]) if r[6] else None,
                avatarUrl=r[7],
            )
            for r in rows
        ]

    def count_messages(self, room: str) -> int:
        row = self._fetchone("SELECT COUNT(*) FROM messages WHERE room = ?", [room])
        return row[0] if row else 0

    # -----------------------------------------------------------------------
    # Last-seen pointers
    # -----------------------------------------------------------------------

    def set_last_seen(self, room: str, user: str, message_id: str) -> None:
        self._execute(
            'INSERT OR REPLACE INTO last_seen (room, "user", msg_id) VALUES (?, ?, ?)',
            [room, user, message_id],
        )

    def get_last_seen(self, room: str, user: str) -> Optional[str]:
        row = self._fetchone(
            'SELECT msg_id FROM last_seen WHERE room = ? AND "user" = ?',
            [room, user],
        )
        return row[0] if row else None

    # -----------------------------------------------------------------------
    # Reactions
    # -----------------------------------------------------------------------

    def toggle_reaction(self, room: str, message_id: str, user: str, emoji: str) -> int:
        """Flip membership of (message, room, user, emoji) and return the new count.

        The membership check, the delete-or-insert and the recount run in one
        transaction while holding the store lock, so two toggles of the same
        key can never interleave.

        Raises:
            StorageError: If the transaction fails (it is rolled back).
        """
        key = [message_id, room, user, emoji]
        with self._lock:
            conn = self._get_connection()
            try:
                conn.begin()
                present = conn.execute(
                    """
                    SELECT 1 FROM reactions
                    WHERE msg_id = ? AND room = ? AND "user" = ? AND emoji = ?
                    """,
                    key,
                ).fetchone()
                if present:
                    conn.execute(
                        """
                        DELETE FROM reactions
                        WHERE msg_id = ? AND room = ? AND "user" = ? AND emoji = ?
                        """,
                        key,
                    )
                else:
                    conn.execute(
                        'INSERT INTO reactions (msg_id, room, "user", emoji) VALUES (?, ?, ?, ?)',
                        key,
                    )
                count = conn.execute(
                    "SELECT COUNT(*) FROM reactions WHERE msg_id = ? AND room = ? AND emoji = ?",
                    [message_id, room, emoji],
                ).fetchone()[0]
                conn.commit()
            except duckdb.Error as e:
                try:
                    conn.rollback()
                except duckdb.Error:
                    logger.debug("[ChatStore] No open transaction to roll back")
                logger.error("[ChatStore] Reaction toggle failed for %s: %s", key, e)
                raise StorageError(str(e)) from e
        return count

    def has_reaction(self, room: str, message_id: str, user: str, emoji: str) -> bool:
        row = self._fetchone(
            """
            SELECT 1 FROM reactions
            WHERE msg_id = ? AND room = ? AND "user" = ? AND emoji = ?
            """,
            [message_id, room, user, emoji],
        )
        return row is not None

    def count_reactions(self, room: str, message_id: str, emoji: str) -> int:
        row = self._fetchone(
            "SELECT COUNT(*) FROM reactions WHERE msg_id = ? AND room = ? AND emoji = ?",
            [message_id, room, emoji],
        )
        return row[0] if row else 0

    def list_reaction_tallies(self, room: str) -> List[ReactionTally]:
        """Per (message, emoji) counts for a room. Only counts above zero appear."""
        rows = self._fetchall(
            """
            SELECT msg_id, emoji, COUNT(*) AS count
            FROM reactions
            WHERE room = ?
            GROUP BY msg_id, emoji
            HAVING COUNT(*) > 0
            ORDER BY msg_id, emoji
            """,
            [room],
        )
        return [ReactionTally(id=r[0], emoji=r[1], count=r[2]) for r in rows]

    # -----------------------------------------------------------------------
    # Room backgrounds and user avatars
    # -----------------------------------------------------------------------

    def set_room_background(self, room: str, url: str) -> None:
        self._execute(
            "INSERT OR REPLACE INTO room_backgrounds (room, url) VALUES (?, ?)",
            [room, url],
        )

    def get_room_background(self, room: str) -> Optional[str]:
        row = self._fetchone("SELECT url FROM room_backgrounds WHERE room = ?", [room])
        return row[0] if row else None

    def set_user_avatar(self, name: str, url: str) -> None:
        self._execute(
            "INSERT OR REPLACE INTO users (name, avatar_url) VALUES (?, ?)",
            [name, url],
        )

    def get_user_avatar(self, name: str) -> Optional[str]:
        row = self._fetchone("SELECT avatar_url FROM users WHERE name = ?", [name])
        return row[0] if row else None

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
