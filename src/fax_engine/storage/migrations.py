"""Idempotent database schema creation."""

from __future__ import annotations

import aiosqlite

USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    phone_number TEXT NOT NULL UNIQUE,
    email_address TEXT,
    name TEXT,
    preferences TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
)
"""

CONTEXTS_TABLE = """
CREATE TABLE IF NOT EXISTS conversation_contexts (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    reference_id TEXT NOT NULL,
    context_type TEXT NOT NULL,
    context_data TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
)
"""

CONTEXTS_USER_INDEX = """
CREATE INDEX IF NOT EXISTS idx_contexts_user_created
ON conversation_contexts(user_id, created_at)
"""

CONTEXTS_REFERENCE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_contexts_reference_id ON conversation_contexts(reference_id)
"""

FAX_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS fax_jobs (
    job_id TEXT PRIMARY KEY,
    status TEXT NOT NULL,
    metadata TEXT NOT NULL DEFAULT '{}',
    updated_at TEXT NOT NULL
)
"""

AUDIT_LOGS_TABLE = """
CREATE TABLE IF NOT EXISTS audit_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    entity_type TEXT NOT NULL,
    entity_id TEXT NOT NULL,
    operation TEXT NOT NULL,
    details TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
)
"""

AUDIT_LOGS_ENTITY_INDEX = """
CREATE INDEX IF NOT EXISTS idx_audit_logs_entity ON audit_logs(entity_type, entity_id)
"""


async def initialize_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(USERS_TABLE)
        await db.execute(CONTEXTS_TABLE)
        await db.execute(CONTEXTS_USER_INDEX)
        await db.execute(CONTEXTS_REFERENCE_INDEX)
        await db.execute(FAX_JOBS_TABLE)
        await db.execute(AUDIT_LOGS_TABLE)
        await db.execute(AUDIT_LOGS_ENTITY_INDEX)
        await db.commit()
