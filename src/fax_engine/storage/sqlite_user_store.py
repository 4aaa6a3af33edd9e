"""SQLite-backed user store."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any

import aiosqlite

from fax_engine.models.domain import User
from fax_engine.storage.migrations import initialize_db


class SQLiteUserStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_db(self._db_path)

    async def find_or_create(self, phone_number: str) -> tuple[User, bool]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM users WHERE phone_number = ?", (phone_number,)
            ) as cursor:
                row = await cursor.fetchone()
            if row is not None:
                return self._row_to_user(row), False

            user = User(id=str(uuid.uuid4()), phone_number=phone_number)
            await db.execute(
                "INSERT INTO users (id, phone_number, preferences, created_at) VALUES (?, ?, ?, ?)",
                (user.id, phone_number, "{}", datetime.now(timezone.utc).isoformat()),
            )
            await db.commit()
            return user, True

    async def find_by_id(self, user_id: str) -> User | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute("SELECT * FROM users WHERE id = ?", (user_id,)) as cursor:
                row = await cursor.fetchone()
                return self._row_to_user(row) if row else None

    async def update_preferences(self, user_id: str, preferences: dict[str, Any]) -> None:
        """Merge ``preferences`` into the stored ones."""
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT preferences FROM users WHERE id = ?", (user_id,)
            ) as cursor:
                row = await cursor.fetchone()
            if row is None:
                raise KeyError(f"Unknown user: {user_id}")
            merged = {**json.loads(row[0]), **preferences}
            await db.execute(
                "UPDATE users SET preferences = ? WHERE id = ?", (json.dumps(merged), user_id)
            )
            await db.commit()

    @staticmethod
    def _row_to_user(row: aiosqlite.Row) -> User:
        return User(
            id=row["id"],
            phone_number=row["phone_number"],
            email_address=row["email_address"],
            name=row["name"],
            preferences=json.loads(row["preferences"]),
        )
