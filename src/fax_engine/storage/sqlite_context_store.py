"""SQLite-backed conversation-context store."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import aiosqlite

from fax_engine.models.domain import ConversationContext
from fax_engine.storage.migrations import initialize_db


def _to_db(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _from_db(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SQLiteContextStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_db(self._db_path)

    async def save(self, context: ConversationContext) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO conversation_contexts "
                "(id, user_id, reference_id, context_type, context_data, created_at, expires_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    context.id,
                    context.user_id,
                    context.reference_id.upper(),
                    context.context_type,
                    json.dumps(context.context_data),
                    _to_db(context.created_at),
                    _to_db(context.expires_at),
                ),
            )
            await db.commit()

    async def find_by_id(self, context_id: str) -> ConversationContext | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM conversation_contexts WHERE id = ?", (context_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return self._row_to_context(row) if row else None

    async def find_by_reference_id(
        self, reference_id: str, user_id: str
    ) -> ConversationContext | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM conversation_contexts WHERE reference_id = ? AND user_id = ? "
                "ORDER BY created_at DESC LIMIT 1",
                (reference_id.upper(), user_id),
            ) as cursor:
                row = await cursor.fetchone()
                return self._row_to_context(row) if row else None

    async def find_recent_by_user(
        self, user_id: str, window: timedelta
    ) -> list[ConversationContext]:
        """Non-expired contexts created within ``window``, newest first."""
        now = datetime.now(timezone.utc)
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM conversation_contexts "
                "WHERE user_id = ? AND created_at >= ? AND expires_at > ? "
                "ORDER BY created_at DESC",
                (user_id, _to_db(now - window), _to_db(now)),
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_context(row) for row in rows]

    @staticmethod
    def _row_to_context(row: aiosqlite.Row) -> ConversationContext:
        return ConversationContext(
            id=row["id"],
            user_id=row["user_id"],
            reference_id=row["reference_id"],
            context_type=row["context_type"],
            context_data=json.loads(row["context_data"]),
            created_at=_from_db(row["created_at"]),
            expires_at=_from_db(row["expires_at"]),
        )
