"""SQLite-backed fax job status store."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import aiosqlite

from fax_engine.models.enums import JobStatus
from fax_engine.storage.migrations import initialize_db


class SQLiteJobStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_db(self._db_path)

    async def update_status(
        self, job_id: str, status: JobStatus, metadata: dict[str, Any] | None = None
    ) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "INSERT OR REPLACE INTO fax_jobs (job_id, status, metadata, updated_at) "
                "VALUES (?, ?, ?, ?)",
                (
                    job_id,
                    str(status),
                    json.dumps(metadata or {}, default=str),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            await db.commit()

    async def get_status(self, job_id: str) -> tuple[JobStatus, dict[str, Any]] | None:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT status, metadata FROM fax_jobs WHERE job_id = ?", (job_id,)
            ) as cursor:
                row = await cursor.fetchone()
                if row is None:
                    return None
                return JobStatus(row[0]), json.loads(row[1])
