"""SQLite storage implementation."""

import asyncio
import json
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, Protocol

import aiosqlite

from ..config import resolve_db_path
from ..errors import StoreUnavailableError
from ..logging_config import get_logger
from ..models import (
    AttachmentReference,
    Conversation,
    ConversationContext,
    Message,
    PairKey,
    Participant,
    Role,
    TraceEvent,
)

logger = get_logger(__name__)

# Smallest step used to keep message timestamps strictly increasing.
_TICK = timedelta(microseconds=1)

_CONVERSATION_COLUMNS = (
    "id, participant_a, participant_b, context, subject, created_at, last_message_at"
)
_MESSAGE_COLUMNS = (
    "seq, id, conversation_id, sender_id, content, attachment_path, "
    "attachment_name, attachment_mime, attachment_size, created_at"
)


def to_db_timestamp(value: datetime) -> str:
    """Serialize a datetime as a sortable UTC string."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_timestamp(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate driver failures into StoreUnavailableError."""
    try:
        yield
    except aiosqlite.Error as e:
        logger.error("Store operation %s failed: %s", operation, e)
        raise StoreUnavailableError(f"{operation} failed: {e}") from e


class IStorage(Protocol):
    """Persistent storage for conversations, messages and read state."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Conversations
    async def insert_conversation_if_absent(
        self, conversation: Conversation
    ) -> tuple[Conversation, bool]:
        """Atomically create a conversation unless its (pair, context) exists.

        Returns the stored conversation and whether this call created it.
        """
        ...

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Get a conversation by ID."""
        ...

    async def find_conversation(
        self, pair_key: PairKey, context: ConversationContext
    ) -> Conversation | None:
        """Get the conversation for a (pair, context), if any."""
        ...

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """Get a user's conversations, most recently active first."""
        ...

    async def list_all_conversations(self) -> list[Conversation]:
        """Get every conversation, most recently active first."""
        ...

    # Messages
    async def append_message(self, message: Message) -> Message:
        """Insert a message and advance its conversation's last_message_at."""
        ...

    async def get_messages(
        self, conversation_id: str, after: datetime | None = None
    ) -> list[Message]:
        """Get messages for a conversation in order, optionally after a timestamp."""
        ...

    async def get_latest_message(self, conversation_id: str) -> Message | None:
        """Get the most recent message of a conversation."""
        ...

    # Read markers
    async def get_read_marker(self, user_id: str) -> datetime | None:
        """Get a user's global read marker."""
        ...

    async def advance_read_marker(self, user_id: str, timestamp: datetime) -> datetime:
        """Move a user's global read marker forward; returns the stored marker."""
        ...

    async def advance_conversation_read_marker(
        self, user_id: str, conversation_id: str, timestamp: datetime
    ) -> datetime:
        """Move a user's per-conversation read marker forward; returns it."""
        ...

    async def count_unread(self, user_id: str) -> dict[str, int]:
        """Count unread messages per conversation for a user."""
        ...

    # Profiles
    async def save_profile(self, profile: Participant) -> None:
        """Save a participant profile."""
        ...

    async def get_profile(self, user_id: str) -> Participant | None:
        """Get a profile by ID."""
        ...

    async def get_profiles(self, user_ids: list[str]) -> dict[str, Participant]:
        """Get profiles keyed by ID."""
        ...

    async def find_admin(self, email: str | None = None) -> Participant | None:
        """Find an admin profile, by email when given."""
        ...

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None, timeout: float = 5.0):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._timeout = timeout
        self._conn: aiosqlite.Connection | None = None
        # Multi-statement writes share one connection; keep them from interleaving.
        self._write_lock = asyncio.Lock()

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise StoreUnavailableError("Storage not initialized")
        return self._conn

    async def init(self) -> None:
        """Initialize database and create tables."""
        with _store_errors("init"):
            self._conn = await aiosqlite.connect(self._db_path, timeout=self._timeout)

            schema_path = Path(__file__).parent / "schema.sql"
            with open(schema_path, "r", encoding="utf-8") as f:
                schema_sql = f.read()
            await self._conn.executescript(schema_sql)
            await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def _write(self, operation: str, statements) -> None:
        """Run ``statements(conn)`` as one committed transaction."""
        conn = self._require_conn()
        with _store_errors(operation):
            async with self._write_lock:
                try:
                    await statements(conn)
                    await conn.commit()
                except aiosqlite.Error:
                    await conn.rollback()
                    raise

    # Conversations
    async def insert_conversation_if_absent(
        self, conversation: Conversation
    ) -> tuple[Conversation, bool]:
        """Atomically create a conversation unless its (pair, context) exists."""
        pair = PairKey.of(conversation.participant_a, conversation.participant_b)
        context = str(conversation.context)
        result: dict = {}

        async def statements(conn: aiosqlite.Connection) -> None:
            cursor = await conn.execute(
                """
                INSERT INTO conversations
                (id, participant_a, participant_b, context, subject,
                 created_at, last_message_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (participant_a, participant_b, context) DO NOTHING
                """,
                (
                    conversation.id or str(uuid.uuid4()),
                    pair.first,
                    pair.second,
                    context,
                    conversation.subject,
                    to_db_timestamp(conversation.created_at),
                    to_db_timestamp(conversation.last_message_at),
                ),
            )
            result["created"] = cursor.rowcount == 1

            cursor = await conn.execute(
                f"""
                SELECT {_CONVERSATION_COLUMNS}
                FROM conversations
                WHERE participant_a = ? AND participant_b = ? AND context = ?
                """,
                (pair.first, pair.second, context),
            )
            result["row"] = await cursor.fetchone()

        await self._write("insert_conversation", statements)
        return self._row_to_conversation(result["row"]), result["created"]

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        """Get a conversation by ID."""
        conn = self._require_conn()
        with _store_errors("get_conversation"):
            cursor = await conn.execute(
                f"SELECT {_CONVERSATION_COLUMNS} FROM conversations WHERE id = ?",
                (conversation_id,),
            )
            row = await cursor.fetchone()

        return self._row_to_conversation(row) if row else None

    async def find_conversation(
        self, pair_key: PairKey, context: ConversationContext
    ) -> Conversation | None:
        """Get the conversation for a (pair, context), if any."""
        conn = self._require_conn()
        with _store_errors("find_conversation"):
            cursor = await conn.execute(
                f"""
                SELECT {_CONVERSATION_COLUMNS}
                FROM conversations
                WHERE participant_a = ? AND participant_b = ? AND context = ?
                """,
                (pair_key.first, pair_key.second, str(context)),
            )
            row = await cursor.fetchone()

        return self._row_to_conversation(row) if row else None

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """Get a user's conversations, most recently active first."""
        conn = self._require_conn()
        with _store_errors("list_conversations"):
            cursor = await conn.execute(
                f"""
                SELECT {_CONVERSATION_COLUMNS}
                FROM conversations
                WHERE participant_a = ? OR participant_b = ?
                ORDER BY last_message_at DESC, created_at DESC
                """,
                (user_id, user_id),
            )
            rows = await cursor.fetchall()

        return [self._row_to_conversation(row) for row in rows]

    async def list_all_conversations(self) -> list[Conversation]:
        conn = self._require_conn()
        with _store_errors("list_all_conversations"):
            cursor = await conn.execute(
                f"""
                SELECT {_CONVERSATION_COLUMNS}
                FROM conversations
                ORDER BY last_message_at DESC, created_at DESC
                """
            )
            rows = await cursor.fetchall()

        return [self._row_to_conversation(row) for row in rows]

    # Messages
    async def append_message(self, message: Message) -> Message:
        """Insert a message and advance its conversation's last_message_at.

        The stored created_at is clamped to be strictly after the conversation's
        previous last_message_at, so ordering within a conversation is total.
        """
        result: dict = {}

        async def statements(conn: aiosqlite.Connection) -> None:
            cursor = await conn.execute(
                "SELECT last_message_at FROM conversations WHERE id = ?",
                (message.conversation_id,),
            )
            row = await cursor.fetchone()
            created_at = message.created_at
            if row:
                previous = from_db_timestamp(row[0])
                if created_at <= previous:
                    created_at = previous + _TICK

            attachment = message.attachment
            cursor = await conn.execute(
                """
                INSERT INTO messages
                (id, conversation_id, sender_id, content, attachment_path,
                 attachment_name, attachment_mime, attachment_size, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message.id or str(uuid.uuid4()),
                    message.conversation_id,
                    message.sender_id,
                    message.content,
                    attachment.storage_path if attachment else None,
                    attachment.file_name if attachment else None,
                    attachment.mime_type if attachment else None,
                    attachment.size_bytes if attachment else None,
                    to_db_timestamp(created_at),
                ),
            )
            seq = cursor.lastrowid

            await conn.execute(
                "UPDATE conversations SET last_message_at = ? WHERE id = ?",
                (to_db_timestamp(created_at), message.conversation_id),
            )

            cursor = await conn.execute(
                f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE seq = ?", (seq,)
            )
            result["row"] = await cursor.fetchone()

        await self._write("append_message", statements)
        return self._row_to_message(result["row"])

    async def get_messages(
        self, conversation_id: str, after: datetime | None = None
    ) -> list[Message]:
        """Get messages for a conversation in order, optionally after a timestamp."""
        conn = self._require_conn()
        with _store_errors("get_messages"):
            if after:
                cursor = await conn.execute(
                    f"""
                    SELECT {_MESSAGE_COLUMNS}
                    FROM messages
                    WHERE conversation_id = ? AND created_at > ?
                    ORDER BY created_at ASC, seq ASC
                    """,
                    (conversation_id, to_db_timestamp(after)),
                )
            else:
                cursor = await conn.execute(
                    f"""
                    SELECT {_MESSAGE_COLUMNS}
                    FROM messages
                    WHERE conversation_id = ?
                    ORDER BY created_at ASC, seq ASC
                    """,
                    (conversation_id,),
                )
            rows = await cursor.fetchall()

        return [self._row_to_message(row) for row in rows]

    async def get_latest_message(self, conversation_id: str) -> Message | None:
        """Get the most recent message of a conversation."""
        conn = self._require_conn()
        with _store_errors("get_latest_message"):
            cursor = await conn.execute(
                f"""
                SELECT {_MESSAGE_COLUMNS}
                FROM messages
                WHERE conversation_id = ?
                ORDER BY created_at DESC, seq DESC
                LIMIT 1
                """,
                (conversation_id,),
            )
            row = await cursor.fetchone()

        return self._row_to_message(row) if row else None

    # Read markers
    async def get_read_marker(self, user_id: str) -> datetime | None:
        """Get a user's global read marker."""
        conn = self._require_conn()
        with _store_errors("get_read_marker"):
            cursor = await conn.execute(
                "SELECT last_read_at FROM read_markers WHERE user_id = ?",
                (user_id,),
            )
            row = await cursor.fetchone()

        return from_db_timestamp(row[0]) if row else None

    async def advance_read_marker(self, user_id: str, timestamp: datetime) -> datetime:
        """Move a user's global read marker forward (never backward).

        The marker is at least the latest last_message_at among the user's
        conversations, since appends may clamp message times past the clock.
        Returns the stored marker.
        """
        result: dict = {}

        async def statements(conn: aiosqlite.Connection) -> None:
            await conn.execute(
                """
                INSERT INTO read_markers (user_id, last_read_at)
                SELECT ?, MAX(?, COALESCE(MAX(last_message_at), ''))
                FROM conversations
                WHERE participant_a = ? OR participant_b = ?
                ON CONFLICT (user_id) DO UPDATE
                SET last_read_at = MAX(last_read_at, excluded.last_read_at)
                """,
                (user_id, to_db_timestamp(timestamp), user_id, user_id),
            )
            cursor = await conn.execute(
                "SELECT last_read_at FROM read_markers WHERE user_id = ?", (user_id,)
            )
            result["row"] = await cursor.fetchone()

        await self._write("advance_read_marker", statements)
        return from_db_timestamp(result["row"][0])

    async def advance_conversation_read_marker(
        self, user_id: str, conversation_id: str, timestamp: datetime
    ) -> datetime:
        """Move a user's per-conversation read marker forward.

        Never lands before the conversation's last_message_at. Returns the
        stored marker.
        """
        result: dict = {}

        async def statements(conn: aiosqlite.Connection) -> None:
            await conn.execute(
                """
                INSERT INTO conversation_read_markers
                (user_id, conversation_id, last_read_at)
                SELECT ?, id, MAX(?, last_message_at)
                FROM conversations
                WHERE id = ?
                ON CONFLICT (user_id, conversation_id) DO UPDATE
                SET last_read_at = MAX(last_read_at, excluded.last_read_at)
                """,
                (user_id, to_db_timestamp(timestamp), conversation_id),
            )
            cursor = await conn.execute(
                """
                SELECT last_read_at FROM conversation_read_markers
                WHERE user_id = ? AND conversation_id = ?
                """,
                (user_id, conversation_id),
            )
            result["row"] = await cursor.fetchone()

        await self._write("advance_conversation_read_marker", statements)
        row = result["row"]
        return from_db_timestamp(row[0]) if row else timestamp

    async def count_unread(self, user_id: str) -> dict[str, int]:
        """Count unread messages per conversation for a user.

        A message is unread when the other participant sent it after the later
        of the user's global and per-conversation read markers.
        """
        conn = self._require_conn()
        with _store_errors("count_unread"):
            cursor = await conn.execute(
                """
                SELECT m.conversation_id, COUNT(*)
                FROM messages m
                JOIN conversations c ON c.id = m.conversation_id
                LEFT JOIN read_markers r ON r.user_id = ?
                LEFT JOIN conversation_read_markers cr
                    ON cr.user_id = ? AND cr.conversation_id = c.id
                WHERE (c.participant_a = ? OR c.participant_b = ?)
                  AND m.sender_id != ?
                  AND m.created_at > MAX(
                      COALESCE(r.last_read_at, ''),
                      COALESCE(cr.last_read_at, '')
                  )
                GROUP BY m.conversation_id
                """,
                (user_id, user_id, user_id, user_id, user_id),
            )
            rows = await cursor.fetchall()

        return {row[0]: row[1] for row in rows}

    # Profiles
    async def save_profile(self, profile: Participant) -> None:
        """Save a participant profile."""

        async def statements(conn: aiosqlite.Connection) -> None:
            await conn.execute(
                """
                INSERT OR REPLACE INTO profiles (id, role, full_name, email)
                VALUES (?, ?, ?, ?)
                """,
                (profile.id, profile.role.value, profile.full_name, profile.email),
            )

        await self._write("save_profile", statements)

    async def get_profile(self, user_id: str) -> Participant | None:
        """Get a profile by ID."""
        conn = self._require_conn()
        with _store_errors("get_profile"):
            cursor = await conn.execute(
                "SELECT id, role, full_name, email FROM profiles WHERE id = ?",
                (user_id,),
            )
            row = await cursor.fetchone()

        return self._row_to_profile(row) if row else None

    async def get_profiles(self, user_ids: list[str]) -> dict[str, Participant]:
        """Get profiles keyed by ID."""
        if not user_ids:
            return {}

        conn = self._require_conn()
        placeholders = ",".join("?" * len(user_ids))
        with _store_errors("get_profiles"):
            cursor = await conn.execute(
                f"""
                SELECT id, role, full_name, email
                FROM profiles
                WHERE id IN ({placeholders})
                """,
                list(user_ids),
            )
            rows = await cursor.fetchall()

        return {row[0]: self._row_to_profile(row) for row in rows}

    async def find_admin(self, email: str | None = None) -> Participant | None:
        """Find an admin profile, by email when given."""
        conn = self._require_conn()
        with _store_errors("find_admin"):
            if email:
                cursor = await conn.execute(
                    """
                    SELECT id, role, full_name, email
                    FROM profiles
                    WHERE role = ? AND email = ?
                    ORDER BY id
                    LIMIT 1
                    """,
                    (Role.ADMIN.value, email),
                )
            else:
                cursor = await conn.execute(
                    """
                    SELECT id, role, full_name, email
                    FROM profiles
                    WHERE role = ?
                    ORDER BY id
                    LIMIT 1
                    """,
                    (Role.ADMIN.value,),
                )
            row = await cursor.fetchone()

        return self._row_to_profile(row) if row else None

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""

        async def statements(conn: aiosqlite.Connection) -> None:
            await conn.execute(
                """
                INSERT INTO trace_events (id, event_type, actor, data, timestamp)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    event.id or str(uuid.uuid4()),
                    event.event_type,
                    event.actor,
                    json.dumps(event.data, default=str),
                    to_db_timestamp(event.timestamp),
                ),
            )

        await self._write("save_trace_event", statements)

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        conn = self._require_conn()

        # Build query dynamically
        conditions = []
        params: list = []

        if after:
            conditions.append("timestamp > ?")
            params.append(to_db_timestamp(after))
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC
            LIMIT ?
        """
        params.append(limit)

        with _store_errors("get_trace_events"):
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=from_db_timestamp(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        tables = [
            "messages",
            "conversation_read_markers",
            "read_markers",
            "conversations",
            "profiles",
            "trace_events",
        ]

        async def statements(conn: aiosqlite.Connection) -> None:
            for table in tables:
                await conn.execute(f"DELETE FROM {table}")

        await self._write("clear", statements)

    # Row mapping
    @staticmethod
    def _row_to_conversation(row) -> Conversation:
        return Conversation(
            id=row[0],
            participant_a=row[1],
            participant_b=row[2],
            context=ConversationContext.parse(row[3]),
            subject=row[4],
            created_at=from_db_timestamp(row[5]),
            last_message_at=from_db_timestamp(row[6]),
        )

    @staticmethod
    def _row_to_message(row) -> Message:
        attachment = None
        if row[5] is not None:
            attachment = AttachmentReference(
                storage_path=row[5],
                file_name=row[6],
                mime_type=row[7],
                size_bytes=row[8],
            )
        return Message(
            id=row[1],
            conversation_id=row[2],
            sender_id=row[3],
            content=row[4],
            attachment=attachment,
            created_at=from_db_timestamp(row[9]),
            seq=row[0],
        )

    @staticmethod
    def _row_to_profile(row) -> Participant:
        return Participant(
            id=row[0],
            role=Role(row[1]),
            full_name=row[2],
            email=row[3],
        )
