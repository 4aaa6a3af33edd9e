"""SQLite-backed audit log."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import aiosqlite

from fax_engine.storage.migrations import initialize_db


class SQLiteAuditLog:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_db(self._db_path)

    async def record(
        self, entity_type: str, entity_id: str, operation: str, details: dict[str, Any]
    ) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT INTO audit_logs (entity_type, entity_id, operation, details, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    entity_type,
                    entity_id,
                    operation,
                    json.dumps(details, default=str),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            await db.commit()

    async def recent(self, limit: int = 100) -> list[dict[str, Any]]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM audit_logs ORDER BY id DESC LIMIT ?", (limit,)
            ) as cursor:
                rows = await cursor.fetchall()
                return [
                    {
                        "entity_type": row["entity_type"],
                        "entity_id": row["entity_id"],
                        "operation": row["operation"],
                        "details": json.loads(row["details"]),
                        "created_at": row["created_at"],
                    }
                    for row in rows
                ]
